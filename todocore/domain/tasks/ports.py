from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

Document = Dict[str, Any]


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime: ...


class IdGenerator(ABC):
    @abstractmethod
    def new_id(self) -> str: ...


class DocumentStore(ABC):
    """
    Generic document store holding task records.

    Each call is atomic for the one document it touches; nothing spans
    several documents.
    """

    @abstractmethod
    async def get(self, doc_id: str) -> Optional[Document]: ...

    @abstractmethod
    async def insert(self, fields: Document) -> str: ...

    @abstractmethod
    async def patch(self, doc_id: str, fields: Document) -> None: ...

    @abstractmethod
    async def delete(self, doc_id: str) -> None: ...

    @abstractmethod
    async def query_by_field(self, field: str, value: Any) -> List[Tuple[str, Document]]: ...

    @abstractmethod
    async def all(self) -> List[Tuple[str, Document]]: ...
