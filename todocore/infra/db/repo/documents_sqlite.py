from __future__ import annotations

import json
import logging
from typing import Any, List, Optional, Tuple

from todocore.domain.common.errors import NotFoundError
from todocore.domain.tasks.ports import Document, DocumentStore, IdGenerator
from todocore.infra.db.connection import Database
from todocore.infra.ids.uuid_gen import UuidGenerator

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    id TEXT PRIMARY KEY,
    parent_id TEXT,
    body TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_documents_parent ON documents(parent_id);
"""


class SqliteDocumentStore(DocumentStore):
    """
    One JSON document per row. `parentId` is mirrored into an indexed column
    for sibling lookups; every other field is matched with json_extract.
    """

    def __init__(self, db: Database, ids: Optional[IdGenerator] = None) -> None:
        self._db = db
        self._ids = ids or UuidGenerator()

    async def init(self) -> None:
        await self._db.executescript(SCHEMA)

    async def get(self, doc_id: str) -> Optional[Document]:
        row = await self._db.fetchone("SELECT body FROM documents WHERE id = ?;", (doc_id,))
        return json.loads(row["body"]) if row else None

    async def insert(self, fields: Document) -> str:
        doc_id = self._ids.new_id()
        await self._db.execute(
            "INSERT INTO documents(id, parent_id, body) VALUES (?, ?, ?);",
            (doc_id, fields.get("parentId"), json.dumps(fields, ensure_ascii=False)),
        )
        return doc_id

    async def patch(self, doc_id: str, fields: Document) -> None:
        async with self._db.transaction() as conn:
            cur = await conn.execute("SELECT body FROM documents WHERE id = ?;", (doc_id,))
            row = await cur.fetchone()
            if row is None:
                raise NotFoundError(f"Document not found: {doc_id}")
            body = {**json.loads(row["body"]), **fields}
            await conn.execute(
                "UPDATE documents SET parent_id = ?, body = ? WHERE id = ?;",
                (body.get("parentId"), json.dumps(body, ensure_ascii=False), doc_id),
            )

    async def delete(self, doc_id: str) -> None:
        deleted = await self._db.execute("DELETE FROM documents WHERE id = ?;", (doc_id,))
        if deleted == 0:
            raise NotFoundError(f"Document not found: {doc_id}")

    async def query_by_field(self, field: str, value: Any) -> List[Tuple[str, Document]]:
        if field == "parentId":
            rows = await self._db.fetchall("SELECT id, body FROM documents WHERE parent_id = ?;", (value,))
        else:
            rows = await self._db.fetchall(
                "SELECT id, body FROM documents WHERE json_extract(body, ?) = ?;",
                (f"$.{field}", value),
            )
        return [(r["id"], json.loads(r["body"])) for r in rows]

    async def all(self) -> List[Tuple[str, Document]]:
        rows = await self._db.fetchall("SELECT id, body FROM documents;")
        return [(r["id"], json.loads(r["body"])) for r in rows]
