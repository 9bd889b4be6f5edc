"""
Supabase document store

Supabase 테이블 위의 문서 저장소 구현
"""
import asyncio
import uuid
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx
from loguru import logger
from postgrest.exceptions import APIError
from supabase import create_client, Client

from .config import supabase_config
from .document_store import (
    SERVER_TIMESTAMP,
    DocumentAlreadyExists,
    DocumentStore,
    DocumentStoreError,
    Predicate,
    TransientStoreError,
)


# 싱글톤 클라이언트
_supabase_client: Optional[Client] = None

UNIQUE_VIOLATION = "23505"


def get_supabase_client() -> Client:
    """Supabase 클라이언트 인스턴스 반환 (싱글톤)"""
    global _supabase_client
    if _supabase_client is None:
        if not supabase_config.supabase_url or not supabase_config.supabase_key:
            raise ValueError("SUPABASE_URL과 SUPABASE_KEY 환경변수를 설정해주세요")
        _supabase_client = create_client(
            supabase_config.supabase_url,
            supabase_config.supabase_key
        )
    return _supabase_client


def _serialize(value: Any) -> Any:
    """필드 값을 PostgREST가 받는 형태로 변환"""
    if value is SERVER_TIMESTAMP:
        # timestamptz 변환 시 Postgres가 'now' 리터럴을 현재 시각으로 해석
        return "now"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    return value


class SupabaseDocumentStore(DocumentStore):
    """supabase-py 테이블 기반 DocumentStore (컬렉션당 테이블 하나)"""

    def __init__(
        self,
        client: Optional[Client] = None,
        timeout: float = 5.0,
        retry_delay: float = 0.5
    ):
        self.client: Client = client or get_supabase_client()
        self.timeout = timeout
        self.retry_delay = retry_delay

    # ==================== 실행 ====================

    async def _execute(self, description: str, request: Callable[[], Any]) -> Any:
        """블로킹 PostgREST 요청 실행 (타임아웃, 1회 재시도)"""
        for attempt in (1, 2):
            try:
                return await asyncio.wait_for(
                    asyncio.to_thread(request),
                    timeout=self.timeout
                )
            except (httpx.TransportError, asyncio.TimeoutError) as e:
                if attempt == 1:
                    logger.warning(f"{description} 실패, {self.retry_delay}초 후 재시도: {e!r}")
                    await asyncio.sleep(self.retry_delay)
                    continue
                logger.error(f"{description} 재시도 후에도 실패: {e!r}")
                raise TransientStoreError(f"{description}: backend unavailable") from e
            except APIError as e:
                if e.code == UNIQUE_VIOLATION:
                    raise DocumentAlreadyExists(f"{description}: {e.message}") from e
                logger.error(f"{description} 거부됨: {e.message}")
                raise DocumentStoreError(f"{description}: {e.message}") from e

    def _apply_predicates(self, query, predicates: Sequence[Predicate]):
        for p in predicates:
            value = _serialize(p.value)
            if p.op == "==":
                query = query.is_(p.field, "null") if value is None else query.eq(p.field, value)
            elif p.op == "!=":
                query = query.not_.is_(p.field, "null") if value is None else query.neq(p.field, value)
            elif p.op == "<":
                query = query.lt(p.field, value)
            elif p.op == "<=":
                query = query.lte(p.field, value)
            elif p.op == ">":
                query = query.gt(p.field, value)
            elif p.op == ">=":
                query = query.gte(p.field, value)
            elif p.op == "in":
                query = query.in_(p.field, list(value))
            elif p.op == "contains":
                query = query.contains(p.field, [value])
        return query

    # ==================== DocumentStore ====================

    async def get_document(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        result = await self._execute(
            f"get {collection}/{document_id}",
            lambda: self.client.table(collection).select("*").eq(
                "id", document_id
            ).limit(1).execute()
        )
        if result.data:
            return result.data[0]
        return None

    async def create_document(
        self,
        collection: str,
        data: Dict[str, Any],
        document_id: Optional[str] = None
    ) -> str:
        document_id = document_id or str(uuid.uuid4())
        payload = _serialize({**data, "id": document_id})

        await self._execute(
            f"create {collection}/{document_id}",
            lambda: self.client.table(collection).insert(payload).execute()
        )
        return document_id

    async def update_document(
        self,
        collection: str,
        document_id: str,
        data: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        payload = _serialize(data)
        conditions = [Predicate(k, "==", v) for k, v in (expected or {}).items()]

        def request():
            query = self.client.table(collection).update(payload).eq("id", document_id)
            return self._apply_predicates(query, conditions).execute()

        result = await self._execute(f"update {collection}/{document_id}", request)
        if result.data:
            return result.data[0]
        return None

    async def delete_document(self, collection: str, document_id: str) -> bool:
        result = await self._execute(
            f"delete {collection}/{document_id}",
            lambda: self.client.table(collection).delete().eq("id", document_id).execute()
        )
        return bool(result.data)

    async def query_documents(
        self,
        collection: str,
        predicates: Sequence[Predicate] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        def request():
            query = self._apply_predicates(
                self.client.table(collection).select("*"), predicates
            )
            if order_by:
                query = query.order(order_by, desc=descending)
            if limit:
                query = query.limit(limit)
            return query.execute()

        result = await self._execute(f"query {collection}", request)
        return result.data or []
