"""Shared fixtures and fakes."""

import asyncio
import os

os.environ.setdefault("USE_MOCK_DB", "true")

from typing import Any, Dict, List, Optional  # noqa: E402

import pytest  # noqa: E402

from fieldwatch.core.session import Identity, SessionContext  # noqa: E402
from fieldwatch.models.location import GeoPoint  # noqa: E402
from fieldwatch.services.contracts import StoreQuery  # noqa: E402
from fieldwatch.services.memory_store import InMemoryDocumentStore, InMemoryObjectStore  # noqa: E402


class FakeSubscription:
    def __init__(self, query: StoreQuery, callback):
        self.query = query
        self.callback = callback
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True


class ControllableStore:
    """
    Document store whose snapshot deliveries are pushed by the test.

    push() delivers straight to every watch opened on a collection, open or
    not, so tests can replay stale deliveries after unsubscribe; the
    component under test is responsible for discarding them.
    """

    def __init__(self):
        self.watches: List[FakeSubscription] = []
        self.created: List[tuple] = []
        self.profiles: Dict[str, Dict[str, Any]] = {}
        self.fail_create: Optional[Exception] = None
        self.fail_get: Optional[Exception] = None

    async def create(self, collection, data, server_timestamp_field=None) -> str:
        if self.fail_create is not None:
            raise self.fail_create
        self.created.append((collection, dict(data), server_timestamp_field))
        return f"{collection}-{len(self.created)}"

    async def get(self, collection, doc_id):
        if self.fail_get is not None:
            raise self.fail_get
        profile = self.profiles.get(doc_id) if collection == "users" else None
        return None if profile is None else {**profile, "id": doc_id}

    async def query(self, query):
        return []

    def watch(self, query, on_snapshot) -> FakeSubscription:
        subscription = FakeSubscription(query, on_snapshot)
        self.watches.append(subscription)
        return subscription

    def push(self, collection: str, records: List[Dict[str, Any]]) -> None:
        for subscription in self.watches:
            if subscription.query.collection == collection:
                subscription.callback([dict(record) for record in records])


class StaticLocationProvider:
    def __init__(self, granted: bool = True, position: Optional[GeoPoint] = None, hang: bool = False):
        self.granted = granted
        self.position = position or GeoPoint(latitude=12.9, longitude=77.6)
        self.hang = hang
        self.permission_requests = 0
        self.position_requests = 0

    async def request_permission(self) -> bool:
        self.permission_requests += 1
        return self.granted

    async def current_position(self) -> GeoPoint:
        self.position_requests += 1
        if self.hang:
            await asyncio.sleep(3600)
        return self.position


@pytest.fixture
def controllable_store() -> ControllableStore:
    return ControllableStore()


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def session() -> SessionContext:
    return SessionContext(Identity(user_id="user-1", email="user1@example.com"))


@pytest.fixture
def location_provider() -> StaticLocationProvider:
    return StaticLocationProvider()
