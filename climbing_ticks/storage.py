"""Document persistence on top of SQLite.

Documents are JSON objects addressed by slash-separated keys such as
``users/abc/routes/123``. All writes for an operation are committed together
through ``write_batch`` so that a failure never leaves a partial update.
"""
from __future__ import annotations

import copy
import json
import logging
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from . import config

logger = logging.getLogger(__name__)


CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS documents (
    key TEXT PRIMARY KEY,
    data TEXT NOT NULL
);
"""

Document = Dict[str, Any]


class CachedDataError(RuntimeError):
    """Raised when data needed for an update might be stale."""


@dataclass
class DocumentSnapshot:
    key: str
    data: Optional[Document]
    from_cache: bool = False

    @property
    def exists(self) -> bool:
        return self.data is not None

    @property
    def id(self) -> str:
        return self.key.rsplit("/", 1)[-1]


@dataclass
class Write:
    """A single document write. ``data`` of None deletes the document."""

    key: str
    data: Optional[Document]
    merge: bool = False


def require_fresh(snapshot: DocumentSnapshot, what: str) -> DocumentSnapshot:
    """Returns ``snapshot`` if it was read from the database rather than the cache."""

    if snapshot.from_cache:
        raise CachedDataError(f"Can't update {what} using cached data")
    return snapshot


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class DocumentStore:
    """A thin wrapper around SQLite operations for document persistence.

    Documents that have been read or written are kept in an in-memory cache.
    When ``offline`` is set, reads are served from that cache and flagged as
    such, so callers can tell that the data may be out of date.
    """

    def __init__(self, path: Path | str = config.DEFAULT_DATABASE_PATH, *, offline: bool = False) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.offline = offline
        self._cache: Dict[str, Optional[Document]] = {}

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.path))
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        with self.connect() as conn:
            conn.execute(CREATE_TABLE_SQL)
            conn.commit()

    def read(self, key: str) -> DocumentSnapshot:
        if self.offline:
            return DocumentSnapshot(key, copy.deepcopy(self._cache.get(key)), from_cache=True)

        with self.connect() as conn:
            row = conn.execute("SELECT data FROM documents WHERE key = ?", (key,)).fetchone()
        data = json.loads(row["data"]) if row else None
        self._cache[key] = copy.deepcopy(data)
        return DocumentSnapshot(key, data)

    def list_collection(self, path: str) -> List[DocumentSnapshot]:
        """Returns all documents directly within the collection at ``path``."""

        prefix = path.rstrip("/") + "/"
        if self.offline:
            return [
                DocumentSnapshot(key, copy.deepcopy(data), from_cache=True)
                for key, data in sorted(self._cache.items())
                if data is not None and key.startswith(prefix) and "/" not in key[len(prefix) :]
            ]

        with self.connect() as conn:
            rows = conn.execute(
                "SELECT key, data FROM documents WHERE key LIKE ? ESCAPE '\\' ORDER BY key",
                (_escape_like(prefix) + "%",),
            ).fetchall()

        snapshots = []
        for row in rows:
            key = row["key"]
            if "/" in key[len(prefix) :]:
                continue
            data = json.loads(row["data"])
            self._cache[key] = copy.deepcopy(data)
            snapshots.append(DocumentSnapshot(key, data))
        return snapshots

    def write_batch(self, writes: Iterable[Write]) -> int:
        """Atomically applies ``writes`` in order and returns how many there were."""

        writes = list(writes)
        if not writes:
            return 0
        if self.offline:
            raise CachedDataError("Can't write documents while offline")

        conn = self.connect()
        try:
            with conn:
                for write in writes:
                    if write.data is None:
                        conn.execute("DELETE FROM documents WHERE key = ?", (write.key,))
                        continue
                    data = write.data
                    if write.merge:
                        row = conn.execute("SELECT data FROM documents WHERE key = ?", (write.key,)).fetchone()
                        if row:
                            data = {**json.loads(row["data"]), **write.data}
                    conn.execute(
                        "INSERT OR REPLACE INTO documents (key, data) VALUES (?, ?)",
                        (write.key, json.dumps(data)),
                    )
        finally:
            conn.close()

        # Only update the cache once the transaction has committed.
        for write in writes:
            if write.data is None or not write.merge:
                self._cache[write.key] = copy.deepcopy(write.data)
            else:
                self._cache.pop(write.key, None)
        logger.debug("Committed %s document writes", len(writes))
        return len(writes)


@dataclass
class WriteBatch:
    """Collects writes so they can be committed to the store all at once."""

    store: DocumentStore
    writes: List[Write] = field(default_factory=list)

    def set(self, key: str, data: Document, *, merge: bool = False) -> None:
        self.writes.append(Write(key, copy.deepcopy(data), merge=merge))

    def delete(self, key: str) -> None:
        self.writes.append(Write(key, None))

    def commit(self) -> int:
        count = self.store.write_batch(self.writes)
        self.writes = []
        return count


__all__ = [
    "CachedDataError",
    "DocumentSnapshot",
    "DocumentStore",
    "Write",
    "WriteBatch",
    "require_fresh",
]
