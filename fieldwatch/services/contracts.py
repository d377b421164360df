from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from fieldwatch.core.session import Identity
from fieldwatch.models.location import GeoPoint


Record = Dict[str, Any]
SnapshotCallback = Callable[[List[Record]], None]


@dataclass(frozen=True)
class StoreQuery:
    """
    "All records of a collection, optionally filtered by equality, ordered
    by one field".
    """

    collection: str
    filters: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)
    order_by: Optional[str] = "created_at"
    descending: bool = True

    def where(self, field_path: str, value: Any) -> "StoreQuery":
        return StoreQuery(
            collection=self.collection,
            filters=self.filters + ((field_path, value),),
            order_by=self.order_by,
            descending=self.descending,
        )


class Subscription(Protocol):
    """Handle of a live watch. close() is synchronous and idempotent."""

    def close(self) -> None: ...

    @property
    def closed(self) -> bool: ...


class DocumentStore(Protocol):
    """Document store contract (Firestore or in-memory)."""

    async def create(
        self,
        collection: str,
        data: Record,
        server_timestamp_field: Optional[str] = None,
    ) -> str: ...

    async def get(self, collection: str, doc_id: str) -> Optional[Record]: ...

    async def query(self, query: StoreQuery) -> List[Record]: ...

    def watch(self, query: StoreQuery, on_snapshot: SnapshotCallback) -> Subscription:
        """
        Start a live query. Must be called from a running event loop; every
        snapshot (full result set, each record carrying its "id") is
        delivered on that loop.
        """
        ...


class ObjectStore(Protocol):
    """Write-once object store contract (Firebase Storage or in-memory)."""

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: Dict[str, str],
    ) -> None: ...

    async def durable_url(self, key: str) -> str: ...


class LocationProvider(Protocol):
    """Device location capability."""

    async def request_permission(self) -> bool: ...

    async def current_position(self) -> GeoPoint: ...


class IdentityProvider(Protocol):
    """Who is calling. SessionContext is the implementation used by the app."""

    def current_user(self) -> Optional[Identity]: ...

    def require_user(self) -> Identity: ...
