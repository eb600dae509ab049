"""SQLite live document store: JSON documents grouped in collections, with watches."""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable
from uuid import uuid4

from atelier.config import ANONYMOUS_AUTH_ENABLED, DB_PATH

logger = logging.getLogger(__name__)

Document = dict[str, Any]
SnapshotCallback = Callable[[Any], None]
ErrorCallback = Callable[[Exception], None]


class StoreError(Exception):
    """A read or write against the document store failed."""


class DocumentNotFoundError(StoreError):
    """An update targeted a document that does not exist."""


class AuthNotConfiguredError(StoreError):
    """Anonymous sessions are not enabled for this store."""


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


_UNSET = object()


class Watch:
    """A live subscription to one collection or one document.

    Reads run in a worker thread. Each watch has at most one reader task,
    so snapshots are delivered in the order they were read; requests made
    while a read is in flight are folded into one more read. A snapshot
    equal to the previously delivered one is skipped.
    """

    def __init__(
        self,
        store: DocumentStore,
        collection: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
        *,
        doc_id: str | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> None:
        self.store = store
        self.collection = collection
        self.doc_id = doc_id
        self.order_by = order_by
        self.descending = descending
        self.active = True
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._last: Any = _UNSET
        self._stale = False
        self._task: asyncio.Task[None] | None = None

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._task is not None:
            self._task.cancel()
        self.store._forget(self)

    def _read(self) -> Any:
        if self.doc_id is not None:
            return self.store._load_document(self.collection, self.doc_id)
        return self.store._load_collection(self.collection, self.order_by, self.descending)

    def _request(self) -> None:
        if not self.active:
            return
        self._stale = True
        if not self.busy:
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while self._stale and self.active:
            self._stale = False
            try:
                snapshot = await asyncio.to_thread(self._read)
            except (StoreError, ValueError) as exc:
                self._fail(exc)
                continue
            if not self.active or snapshot == self._last:
                continue
            self._last = snapshot
            self._on_snapshot(snapshot)

    def _fail(self, exc: Exception) -> None:
        if not self.active:
            return
        if self._on_error is None:
            logger.warning("watch %s failed: %s", self.collection, exc)
            return
        self._on_error(exc)


class DocumentStore:
    """Collections of JSON documents in one sqlite file.

    Writes run in a worker thread and notify watches of the written collection.
    Writes from other processes are picked up by `poll_once`, which compares
    sqlite's ``data_version`` counter.
    """

    def __init__(self, db_path: str | Path = DB_PATH, *, anonymous_auth: bool = ANONYMOUS_AUTH_ENABLED) -> None:
        self.db_path = Path(db_path)
        self.anonymous_auth = anonymous_auth
        self._watches: list[Watch] = []
        self._poll_conn: sqlite3.Connection | None = None
        self._data_version: int | None = None

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(self.db_path)

    def bootstrap_schema(self) -> None:
        """Create the store schema if it does not already exist."""
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    id TEXT NOT NULL,
                    data TEXT NOT NULL,
                    PRIMARY KEY (collection, id)
                );

                CREATE TABLE IF NOT EXISTS sessions (
                    uid TEXT PRIMARY KEY,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS preferences (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );
                """
            )

    def close(self) -> None:
        for watch in list(self._watches):
            watch.cancel()
        if self._poll_conn is not None:
            self._poll_conn.close()
            self._poll_conn = None

    # Reads

    def _load_collection(self, collection: str, order_by: str | None = None, descending: bool = False) -> list[Document]:
        sql = "SELECT id, data FROM documents WHERE collection = ?"
        params: list[Any] = [collection]
        if order_by is not None:
            sql += f" ORDER BY json_extract(data, ?) {'DESC' if descending else 'ASC'}, id"
            params.append(f"$.{order_by}")
        try:
            with self._connect() as conn:
                rows = conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Cannot read {collection}: {exc}") from exc
        return [{"id": doc_id, **json.loads(data)} for doc_id, data in rows]

    def _load_document(self, collection: str, doc_id: str) -> Document | None:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT data FROM documents WHERE collection = ? AND id = ?", (collection, doc_id)
                ).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Cannot read {collection}/{doc_id}: {exc}") from exc
        if row is None:
            return None
        return {"id": doc_id, **json.loads(row[0])}

    async def get(self, collection: str, doc_id: str) -> Document | None:
        return await asyncio.to_thread(self._load_document, collection, doc_id)

    # Writes

    def _write(self, collection: str, statement: str, params: tuple[Any, ...]) -> int:
        try:
            with self._connect() as conn:
                with conn:
                    cur = conn.execute(statement, params)
                    return cur.rowcount
        except sqlite3.Error as exc:
            raise StoreError(f"Write to {collection} failed: {exc}") from exc

    def _merge(self, collection: str, doc_id: str, fields: Document, must_exist: bool) -> None:
        try:
            with self._connect() as conn:
                with conn:
                    row = conn.execute(
                        "SELECT data FROM documents WHERE collection = ? AND id = ?", (collection, doc_id)
                    ).fetchone()
                    if row is None and must_exist:
                        raise DocumentNotFoundError(f"No document {collection}/{doc_id}")
                    current = json.loads(row[0]) if row is not None else {}
                    current.update(fields)
                    conn.execute(
                        "INSERT OR REPLACE INTO documents (collection, id, data) VALUES (?, ?, ?)",
                        (collection, doc_id, json.dumps(current)),
                    )
        except sqlite3.Error as exc:
            raise StoreError(f"Write to {collection}/{doc_id} failed: {exc}") from exc

    async def add(self, collection: str, data: Document, doc_id: str | None = None) -> str:
        """Create a document and return its id. Fails if the id already exists."""
        doc_id = doc_id or uuid4().hex
        await asyncio.to_thread(
            self._write,
            collection,
            "INSERT INTO documents (collection, id, data) VALUES (?, ?, ?)",
            (collection, doc_id, json.dumps(data)),
        )
        self._notify(collection)
        return doc_id

    async def set(self, collection: str, doc_id: str, data: Document, merge: bool = False) -> None:
        if merge:
            await asyncio.to_thread(self._merge, collection, doc_id, data, False)
        else:
            await asyncio.to_thread(
                self._write,
                collection,
                "INSERT OR REPLACE INTO documents (collection, id, data) VALUES (?, ?, ?)",
                (collection, doc_id, json.dumps(data)),
            )
        self._notify(collection)

    async def update(self, collection: str, doc_id: str, fields: Document) -> None:
        await asyncio.to_thread(self._merge, collection, doc_id, fields, True)
        self._notify(collection)

    async def delete(self, collection: str, doc_id: str) -> None:
        await asyncio.to_thread(
            self._write,
            collection,
            "DELETE FROM documents WHERE collection = ? AND id = ?",
            (collection, doc_id),
        )
        self._notify(collection)

    # Watches

    def watch(
        self,
        collection: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
    ) -> Watch:
        """Subscribe to full snapshots of a collection, starting with the current one."""
        self._ensure_baseline()
        watch = Watch(self, collection, on_snapshot, on_error, order_by=order_by, descending=descending)
        self._watches.append(watch)
        watch._request()
        return watch

    def watch_document(
        self,
        collection: str,
        doc_id: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Watch:
        """Subscribe to one document; snapshots are ``None`` while it is absent."""
        self._ensure_baseline()
        watch = Watch(self, collection, on_snapshot, on_error, doc_id=doc_id)
        self._watches.append(watch)
        watch._request()
        return watch

    async def settle(self) -> None:
        """Wait until every watch has delivered the snapshots requested so far."""
        while True:
            pending = [watch._task for watch in self._watches if watch.busy]
            if not pending:
                return
            await asyncio.wait(pending)

    def _forget(self, watch: Watch) -> None:
        if watch in self._watches:
            self._watches.remove(watch)

    def _notify(self, collection: str) -> None:
        for watch in list(self._watches):
            if watch.collection == collection:
                watch._request()

    def _read_data_version(self) -> int:
        if self._poll_conn is None:
            self._poll_conn = self._connect()
        try:
            return self._poll_conn.execute("PRAGMA data_version").fetchone()[0]
        except sqlite3.Error as exc:
            raise StoreError(f"Cannot poll store: {exc}") from exc

    def _ensure_baseline(self) -> None:
        if self._data_version is None:
            try:
                self._data_version = self._read_data_version()
            except StoreError as exc:
                logger.warning("%s", exc)

    def poll_once(self) -> bool:
        """Refresh every watch if the database changed since the last poll."""
        version = self._read_data_version()
        changed = self._data_version is not None and version != self._data_version
        self._data_version = version
        if changed:
            for watch in list(self._watches):
                watch._request()
        return changed

    async def poll_changes(self, interval: float) -> None:
        """Poll for writes made by other processes until cancelled."""
        while True:
            try:
                self.poll_once()
            except StoreError as exc:
                logger.warning("store poll failed: %s", exc)
            await asyncio.sleep(interval)

    # Sessions and local preferences

    def _create_session(self) -> str:
        uid = uuid4().hex
        try:
            with self._connect() as conn:
                with conn:
                    conn.execute("INSERT INTO sessions (uid, created_at) VALUES (?, ?)", (uid, _utc_now_iso()))
        except sqlite3.Error as exc:
            raise StoreError(f"Cannot create session: {exc}") from exc
        return uid

    async def sign_in_anonymously(self) -> str:
        """Open an anonymous session and return its uid."""
        if not self.anonymous_auth:
            raise AuthNotConfiguredError("anonymous sessions are disabled")
        return await asyncio.to_thread(self._create_session)

    def get_preference(self, key: str, default: str | None = None) -> str | None:
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT value FROM preferences WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Cannot read preference {key}: {exc}") from exc
        return row[0] if row is not None else default

    def set_preference(self, key: str, value: str) -> None:
        self._write("preferences", "INSERT OR REPLACE INTO preferences (key, value) VALUES (?, ?)", (key, value))
