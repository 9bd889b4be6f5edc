"""
Document store services

문서 저장소 기반 서비스의 공통 접근 계층
"""
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from database.document_store import DocumentStore, Predicate, TransientStoreError

from .errors import BackendUnavailable
from .membership import utc_now


class StoreBackedService:
    """백엔드 장애를 BackendUnavailable로 바꾸는 저장소 접근"""

    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    async def _get(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.store.get_document(collection, document_id)
        except TransientStoreError as e:
            raise BackendUnavailable(str(e)) from e

    async def _create(
        self,
        collection: str,
        data: Dict[str, Any],
        document_id: Optional[str] = None
    ) -> str:
        try:
            return await self.store.create_document(collection, data, document_id)
        except TransientStoreError as e:
            raise BackendUnavailable(str(e)) from e

    async def _update(
        self,
        collection: str,
        document_id: str,
        data: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        try:
            return await self.store.update_document(collection, document_id, data, expected)
        except TransientStoreError as e:
            raise BackendUnavailable(str(e)) from e

    async def _delete(self, collection: str, document_id: str) -> bool:
        try:
            return await self.store.delete_document(collection, document_id)
        except TransientStoreError as e:
            raise BackendUnavailable(str(e)) from e

    async def _query(
        self,
        collection: str,
        predicates: Sequence[Predicate] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        try:
            return await self.store.query_documents(
                collection, predicates, order_by, descending, limit
            )
        except TransientStoreError as e:
            raise BackendUnavailable(str(e)) from e
