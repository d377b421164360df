"""In-memory document and object stores (local development and tests)."""

import asyncio
import copy
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote
from uuid import uuid4

from fieldwatch.services.contracts import Record, SnapshotCallback, StoreQuery
from fieldwatch.utils.firestore_helpers import parse_timestamp

logger = logging.getLogger(__name__)


class _MemorySubscription:
    """Live watch on an in-memory collection."""

    def __init__(
        self,
        store: "InMemoryDocumentStore",
        query: StoreQuery,
        callback: SnapshotCallback,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self._store = store
        self._query = query
        self._callback = callback
        self._loop = loop
        self._closed = False

    @property
    def query(self) -> StoreQuery:
        return self._query

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._store._detach(self)

    def schedule(self, records: List[Record]) -> None:
        # Deliveries are pushed asynchronously, like a real listener.
        if not self._closed:
            self._loop.call_soon(self._deliver, records)

    def _deliver(self, records: List[Record]) -> None:
        if self._closed:
            return
        self._callback(records)


class InMemoryDocumentStore:
    """
    Dict-backed document store.

    Server timestamps come from a clock that never goes backwards, so
    created_at is strictly increasing across all collections.
    """

    def __init__(self) -> None:
        self.collections: Dict[str, Dict[str, Record]] = {}
        self._watchers: List[_MemorySubscription] = []
        self._last_timestamp: Optional[datetime] = None

    def server_now(self) -> datetime:
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    async def create(
        self,
        collection: str,
        data: Record,
        server_timestamp_field: Optional[str] = None,
    ) -> str:
        doc_id = uuid4().hex[:20]
        record = copy.deepcopy(data)
        if server_timestamp_field:
            record[server_timestamp_field] = self.server_now()
        self.collections.setdefault(collection, {})[doc_id] = record
        self._notify(collection)
        return doc_id

    async def get(self, collection: str, doc_id: str) -> Optional[Record]:
        record = self.collections.get(collection, {}).get(doc_id)
        if record is None:
            return None
        return {**copy.deepcopy(record), "id": doc_id}

    async def query(self, query: StoreQuery) -> List[Record]:
        return self._run_query(query)

    def watch(self, query: StoreQuery, on_snapshot: SnapshotCallback) -> _MemorySubscription:
        loop = asyncio.get_running_loop()
        subscription = _MemorySubscription(self, query, on_snapshot, loop)
        self._watchers.append(subscription)
        subscription.schedule(self._run_query(query))
        return subscription

    def seed(self, seed: Dict[str, Dict[str, Record]]) -> None:
        """Load {collection: {doc_id: data}} without notifying watchers."""
        for collection, docs in seed.items():
            for doc_id, data in docs.items():
                record = copy.deepcopy(data)
                # JSON seeds carry ISO strings; store datetimes like create() does
                record["created_at"] = parse_timestamp(record.get("created_at")) or self.server_now()
                self.collections.setdefault(collection, {})[doc_id] = record

    def load_seed_file(self, path: str) -> None:
        with open(path, "r", encoding="utf-8") as f:
            self.seed(json.load(f))
        logger.info(f"[MOCK DB] Seeded from {path}")

    def active_watch_count(self) -> int:
        return len(self._watchers)

    def _detach(self, subscription: _MemorySubscription) -> None:
        if subscription in self._watchers:
            self._watchers.remove(subscription)

    def _notify(self, collection: str) -> None:
        # The write has already happened; a broken watch must not fail it
        for subscription in list(self._watchers):
            if subscription.query.collection == collection:
                try:
                    subscription.schedule(self._run_query(subscription.query))
                except Exception as e:
                    logger.error(f"[MOCK DB] Could not refresh watch on {collection}: {e}", exc_info=True)

    def _run_query(self, query: StoreQuery) -> List[Record]:
        docs = self.collections.get(query.collection, {})
        results = []
        for doc_id, record in docs.items():
            if all(record.get(field) == value for field, value in query.filters):
                results.append({**copy.deepcopy(record), "id": doc_id})

        if query.order_by:
            # Firestore leaves out documents that lack the ordering field
            results = [r for r in results if r.get(query.order_by) is not None]
            results.sort(key=lambda r: _order_value(r[query.order_by]), reverse=query.descending)
        return results


def _order_value(value):
    return parse_timestamp(value) or value


class InMemoryObjectStore:
    """Write-once object store keeping blobs in a dict."""

    def __init__(self, base_url: str = "memory://fieldwatch") -> None:
        self.base_url = base_url.rstrip("/")
        self.objects: Dict[str, Tuple[bytes, str, Dict[str, str]]] = {}

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: Dict[str, str],
    ) -> None:
        if key in self.objects:
            raise FileExistsError(f"Object already exists: {key}")
        self.objects[key] = (bytes(data), content_type, dict(metadata))

    async def durable_url(self, key: str) -> str:
        if key not in self.objects:
            raise KeyError(key)
        return f"{self.base_url}/{quote(key, safe='')}"
