"""
Firestore-backed document store.

The Admin SDK is synchronous: reads and writes run in the default executor,
and snapshot listeners (which fire on SDK threads) hand their results back
to the event loop that opened the watch.
"""

import asyncio
import logging
from typing import List, Optional

from firebase_admin import firestore

from fieldwatch.services.contracts import Record, SnapshotCallback, StoreQuery
from fieldwatch.utils.firestore_helpers import where_filter

logger = logging.getLogger(__name__)


class FirestoreSubscription:
    """Live Firestore query bound to one event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop, callback: SnapshotCallback, label: str):
        self._loop = loop
        self._callback = callback
        self._label = label
        self._watch = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def attach(self, watch) -> None:
        self._watch = watch

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._watch is not None:
            self._watch.unsubscribe()
            logger.debug(f"Closed Firestore watch on {self._label}")

    def on_snapshot(self, docs, changes, read_time) -> None:
        # Runs on a Firestore listener thread
        if self._closed:
            return
        records = [{**(doc.to_dict() or {}), "id": doc.id} for doc in docs]
        try:
            self._loop.call_soon_threadsafe(self._deliver, records)
        except RuntimeError:
            logger.debug(f"Dropping snapshot for {self._label}: event loop is closed")

    def _deliver(self, records: List[Record]) -> None:
        # Re-checked on the loop thread: close() may have run after the
        # listener thread queued this delivery.
        if self._closed:
            return
        self._callback(records)


class FirestoreDocumentStore:
    """DocumentStore over a firebase_admin Firestore client."""

    def __init__(self, client: firestore.Client):
        self._db = client

    async def create(
        self,
        collection: str,
        data: Record,
        server_timestamp_field: Optional[str] = None,
    ) -> str:
        payload = dict(data)
        if server_timestamp_field:
            payload[server_timestamp_field] = firestore.SERVER_TIMESTAMP

        loop = asyncio.get_running_loop()
        _, doc_ref = await loop.run_in_executor(None, self._db.collection(collection).add, payload)
        logger.info(f"Created {collection}/{doc_ref.id}")
        return doc_ref.id

    async def get(self, collection: str, doc_id: str) -> Optional[Record]:
        loop = asyncio.get_running_loop()
        doc = await loop.run_in_executor(None, self._db.collection(collection).document(doc_id).get)
        if not doc.exists:
            return None
        return {**(doc.to_dict() or {}), "id": doc.id}

    async def query(self, query: StoreQuery) -> List[Record]:
        def run() -> List[Record]:
            return [
                {**(doc.to_dict() or {}), "id": doc.id}
                for doc in self._build_query(query).stream()
            ]

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, run)

    def watch(self, query: StoreQuery, on_snapshot: SnapshotCallback) -> FirestoreSubscription:
        loop = asyncio.get_running_loop()
        subscription = FirestoreSubscription(loop, on_snapshot, query.collection)
        subscription.attach(self._build_query(query).on_snapshot(subscription.on_snapshot))
        logger.debug(f"Opened Firestore watch on {query.collection}")
        return subscription

    def _build_query(self, query: StoreQuery):
        ref = self._db.collection(query.collection)
        for field_path, value in query.filters:
            ref = where_filter(ref, field_path, "==", value)
        if query.order_by:
            direction = firestore.Query.DESCENDING if query.descending else firestore.Query.ASCENDING
            ref = ref.order_by(query.order_by, direction=direction)
        return ref
