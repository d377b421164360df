"""
Live map - merge the `reports` and `sos_alerts` live queries into one marker set.

Each watch delivers the full current result set of its collection. A
snapshot from one source replaces every marker of that source and leaves
the other source alone (replace-by-partition), then the merged set is
republished. Markers are keyed by (kind, id), so the two sources never
collide and the merge gives the same result whatever order the two
streams interleave in.
"""

import functools
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from fieldwatch.models.marker import MapMarker, ReportMarker, SOSMarker, SourceKind
from fieldwatch.models.report import REPORTS_COLLECTION
from fieldwatch.models.sos import SOS_COLLECTION
from fieldwatch.services.contracts import DocumentStore, Record, StoreQuery, Subscription
from fieldwatch.utils.firestore_helpers import parse_location, parse_timestamp

logger = logging.getLogger(__name__)

MarkersCallback = Callable[[List[MapMarker]], None]

SOURCE_QUERIES: Dict[SourceKind, StoreQuery] = {
    SourceKind.REPORT: StoreQuery(REPORTS_COLLECTION),
    SourceKind.SOS: StoreQuery(SOS_COLLECTION),
}

DEFAULT_STATUS = "Active"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def marker_from_record(kind: SourceKind, record: Record) -> MapMarker:
    """Build a typed marker from a raw store record."""
    status = _text(record.get("status")) or DEFAULT_STATUS
    contact = _text(record.get("contact"))
    common = {
        "id": str(record["id"]),
        "location": parse_location(record.get("location")),
        "status": status,
        "description": f"Status: {status} - Contact: {contact or 'N/A'}",
        "contact": contact,
        "created_at": parse_timestamp(record.get("created_at")),
    }

    if kind == SourceKind.REPORT:
        severity = _text(record.get("severity"))
        return ReportMarker(
            label=f"Report: {severity or 'Unknown'}",
            pin_color="blue",
            severity=severity,
            image_url=_text(record.get("image_url")),
            **common,
        )
    if kind == SourceKind.SOS:
        return SOSMarker(
            label="SOS Alert",
            pin_color="red",
            owner_email=_text(record.get("owner_email")),
            **common,
        )
    raise ValueError(f"Unknown marker source: {kind}")


def markers_from_snapshot(kind: SourceKind, records: Iterable[Record]) -> List[MapMarker]:
    """
    Markers for one source snapshot, at most one per id (first occurrence
    wins, i.e. the store's newest-first order).
    """
    markers: List[MapMarker] = []
    seen: Set[str] = set()
    for record in records:
        if record.get("id") in (None, ""):
            logger.warning(f"Skipping {kind.value} record without id")
            continue
        marker = marker_from_record(kind, record)
        if marker.id in seen:
            continue
        seen.add(marker.id)
        markers.append(marker)
    return markers


def _newest_first(marker: MapMarker):
    # Pending server timestamps (None) belong to the newest writes
    return (marker.created_at is None, marker.created_at or _EPOCH, marker.kind, marker.id)


def merge_partitions(partitions: Dict[SourceKind, List[MapMarker]]) -> List[MapMarker]:
    """Union of all partitions, newest first with a stable tie-break."""
    merged = [marker for kind in SourceKind for marker in partitions.get(kind, [])]
    return sorted(merged, key=_newest_first, reverse=True)


class MarkerSubscription:
    """
    One live marker set. Calling the subscription (or close()) unsubscribes.

    State is only touched from deliveries on the event loop, so there is no
    locking.
    """

    def __init__(self, on_markers_changed: MarkersCallback):
        self._callback = on_markers_changed
        self._partitions: Dict[SourceKind, List[MapMarker]] = {kind: [] for kind in SourceKind}
        self._received: Set[SourceKind] = set()
        self._watches: List[Subscription] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def ready(self) -> bool:
        """True once every source has delivered at least one snapshot."""
        return len(self._received) == len(SourceKind)

    @property
    def markers(self) -> List[MapMarker]:
        return merge_partitions(self._partitions)

    def attach(self, watch: Subscription) -> None:
        if self._closed:
            watch.close()
            return
        self._watches.append(watch)

    def on_snapshot(self, kind: SourceKind, records: List[Record]) -> None:
        if self._closed:
            return
        self._partitions[kind] = markers_from_snapshot(kind, records)
        self._received.add(kind)
        logger.debug(f"{kind.value} snapshot: {len(self._partitions[kind])} markers")
        self._callback(self.markers)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for watch in self._watches:
            watch.close()
        self._watches.clear()
        self._partitions = {kind: [] for kind in SourceKind}
        self._received.clear()

    def __call__(self) -> None:
        self.close()


class LiveMapMultiplexer:
    """Opens a report watch and an SOS watch per subscriber."""

    def __init__(self, store: DocumentStore):
        self._store = store

    def subscribe(self, on_markers_changed: MarkersCallback) -> MarkerSubscription:
        """
        Start receiving the merged marker set.

        Must be called from the running event loop. Returns the handle that
        unsubscribes both watches.
        """
        subscription = MarkerSubscription(on_markers_changed)
        try:
            for kind, query in SOURCE_QUERIES.items():
                callback = functools.partial(subscription.on_snapshot, kind)
                subscription.attach(self._store.watch(query, callback))
        except Exception:
            subscription.close()
            raise
        return subscription

    async def snapshot(self) -> List[MapMarker]:
        """One-shot merged marker set (no live updates)."""
        partitions = {}
        for kind, query in SOURCE_QUERIES.items():
            partitions[kind] = markers_from_snapshot(kind, await self._store.query(query))
        return merge_partitions(partitions)
