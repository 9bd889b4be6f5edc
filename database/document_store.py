"""
Document store contract

클럽 서비스가 사용하는 컬렉션/id 기반 문서 저장소 인터페이스
구현체는 이 모듈 옆에 있음 (Supabase)
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence


class _ServerTimestamp:
    """쓰기 시점에 백엔드 시각으로 바뀌는 필드 값"""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class DocumentStoreError(Exception):
    """백엔드가 요청을 거부함"""


class TransientStoreError(DocumentStoreError):
    """백엔드 연결 불가 또는 타임아웃 (이미 1회 재시도함)"""


class DocumentAlreadyExists(DocumentStoreError):
    """이미 있는 id로 create_document 호출"""


OPERATORS = ("==", "!=", "<", "<=", ">", ">=", "in", "contains")


@dataclass(frozen=True)
class Predicate:
    """query_documents용 필드 조건"""
    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in OPERATORS:
            raise ValueError(f"unsupported operator: {self.op}")


class DocumentStore(ABC):
    """
    비동기 문서 저장소

    문서는 일반 dict이며, 반환되는 모든 문서는 "id" 키에 id를 담는다.
    """

    @abstractmethod
    async def get_document(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        """문서 1건 조회 (없으면 None)"""

    @abstractmethod
    async def create_document(
        self,
        collection: str,
        data: Dict[str, Any],
        document_id: Optional[str] = None
    ) -> str:
        """문서 추가 후 id 반환 (없으면 uuid4)"""

    @abstractmethod
    async def update_document(
        self,
        collection: str,
        document_id: str,
        data: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        """
        부분 업데이트

        `expected`의 각 필드가 여전히 주어진 값일 때만 반영한다 (None은 null).
        업데이트된 문서를 반환하고, 일치하는 문서가 없으면 None.
        """

    @abstractmethod
    async def delete_document(self, collection: str, document_id: str) -> bool:
        """문서 1건 삭제 (없었으면 False)"""

    @abstractmethod
    async def query_documents(
        self,
        collection: str,
        predicates: Sequence[Predicate] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """모든 조건에 맞는 문서"""
