from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional, Tuple

from todocore.domain.common.errors import NotFoundError
from todocore.domain.tasks.ports import Document, DocumentStore, IdGenerator
from todocore.infra.ids.uuid_gen import UuidGenerator


class InMemoryDocumentStore(DocumentStore):
    """
    Process-local store. Every write replaces the stored dict with a fresh
    one, and readers always get copies, so a document read earlier is a
    frozen snapshot of that version.
    """

    def __init__(self, ids: Optional[IdGenerator] = None) -> None:
        self._ids = ids or UuidGenerator()
        self._docs: Dict[str, Document] = {}

    async def get(self, doc_id: str) -> Optional[Document]:
        doc = self._docs.get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def insert(self, fields: Document) -> str:
        doc_id = self._ids.new_id()
        self._docs[doc_id] = copy.deepcopy(fields)
        return doc_id

    async def patch(self, doc_id: str, fields: Document) -> None:
        if doc_id not in self._docs:
            raise NotFoundError(f"Document not found: {doc_id}")
        self._docs[doc_id] = {**self._docs[doc_id], **copy.deepcopy(fields)}

    async def delete(self, doc_id: str) -> None:
        if self._docs.pop(doc_id, None) is None:
            raise NotFoundError(f"Document not found: {doc_id}")

    async def query_by_field(self, field: str, value: Any) -> List[Tuple[str, Document]]:
        return [(i, copy.deepcopy(d)) for i, d in self._docs.items() if d.get(field) == value]

    async def all(self) -> List[Tuple[str, Document]]:
        return [(i, copy.deepcopy(d)) for i, d in self._docs.items()]
