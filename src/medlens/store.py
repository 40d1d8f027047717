"""Persistent document store boundary.

The core only relies on collection-level separation, upsert-by-id and
append semantics; any backend providing :class:`DocumentStore` will do.
"""

import asyncio
import json
import logging
import sqlite3
import threading
import uuid
from copy import deepcopy
from typing import Any, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)

KNOWLEDGE_COLLECTION = "medical_knowledge"
RELATIONSHIP_COLLECTION = "medical_relationships"
ANALYSIS_COLLECTION = "analysis_history"

Document = Dict[str, Any]


class DocumentStore(Protocol):
    async def put(self, collection: str, doc_id: str, document: Document) -> None:
        """Insert or replace the document stored under ``doc_id``."""

    async def add(self, collection: str, document: Document) -> str:
        """Append a document under a generated id and return that id."""

    async def all(self, collection: str) -> List[Document]:
        """Return every document in insertion order."""


class InMemoryDocumentStore:
    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Document]] = {}

    async def put(self, collection: str, doc_id: str, document: Document) -> None:
        self._collections.setdefault(collection, {})[doc_id] = deepcopy(document)

    async def add(self, collection: str, document: Document) -> str:
        doc_id = uuid.uuid4().hex
        await self.put(collection, doc_id, document)
        return doc_id

    async def all(self, collection: str) -> List[Document]:
        return [deepcopy(doc) for doc in self._collections.get(collection, {}).values()]

    def count(self, collection: str) -> int:
        return len(self._collections.get(collection, {}))


class SQLiteDocumentStore:
    """JSON documents in a single SQLite table keyed by (collection, id)."""

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            conn = sqlite3.connect(self.db_path, timeout=30.0, check_same_thread=False)
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    collection TEXT NOT NULL,
                    doc_id TEXT NOT NULL,
                    body TEXT NOT NULL,
                    UNIQUE (collection, doc_id)
                )
                """
            )
            conn.commit()
            self._conn = conn
        return self._conn

    def _put(self, collection: str, doc_id: str, document: Document) -> None:
        body = json.dumps(document, default=str)
        with self._lock:
            conn = self._connection()
            conn.execute(
                "INSERT INTO documents (collection, doc_id, body) VALUES (?, ?, ?) "
                "ON CONFLICT (collection, doc_id) DO UPDATE SET body = excluded.body",
                (collection, doc_id, body),
            )
            conn.commit()

    def _all(self, collection: str) -> List[Document]:
        with self._lock:
            rows = self._connection().execute(
                "SELECT body FROM documents WHERE collection = ? ORDER BY seq",
                (collection,),
            ).fetchall()
        return [json.loads(row[0]) for row in rows]

    async def put(self, collection: str, doc_id: str, document: Document) -> None:
        await asyncio.to_thread(self._put, collection, doc_id, document)

    async def add(self, collection: str, document: Document) -> str:
        doc_id = uuid.uuid4().hex
        await self.put(collection, doc_id, document)
        return doc_id

    async def all(self, collection: str) -> List[Document]:
        return await asyncio.to_thread(self._all, collection)

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.debug("Closed document store at %s", self.db_path)
