"""
Report feed - a user's own reports, newest first.

hide_locally() only removes an item from this subscriber's list. The stored
report is never modified, and the item stays hidden for the life of the
subscription even when later snapshots still contain it.
"""

import logging
from typing import Callable, List, Optional, Set

from fieldwatch.models.report import REPORTS_COLLECTION, IncidentReport
from fieldwatch.services.contracts import DocumentStore, Record, StoreQuery, Subscription

logger = logging.getLogger(__name__)

ReportsCallback = Callable[[List[IncidentReport]], None]


def owner_query(owner_id: str) -> StoreQuery:
    return StoreQuery(REPORTS_COLLECTION).where("owner_id", owner_id)


class FeedSubscription:
    def __init__(self, owner_id: str, on_reports_changed: ReportsCallback):
        self.owner_id = owner_id
        self._callback = on_reports_changed
        self._reports: List[IncidentReport] = []
        self._hidden: Set[str] = set()
        self._watch: Optional[Subscription] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def reports(self) -> List[IncidentReport]:
        return [report for report in self._reports if report.id not in self._hidden]

    def attach(self, watch: Subscription) -> None:
        if self._closed:
            watch.close()
            return
        self._watch = watch

    def on_snapshot(self, records: List[Record]) -> None:
        if self._closed:
            return
        self._reports = [IncidentReport.from_record(record) for record in records]
        self._callback(self.reports)

    def hide_locally(self, report_id: str) -> bool:
        """
        Remove a report from this feed without touching the store.

        Returns:
            True if the report was visible and is now hidden
        """
        if self._closed:
            return False
        was_visible = any(report.id == report_id for report in self.reports)
        self._hidden.add(report_id)
        if was_visible:
            logger.info(f"Report {report_id} hidden from {self.owner_id}'s feed")
            self._callback(self.reports)
        return was_visible

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._watch is not None:
            self._watch.close()
            self._watch = None
        self._reports = []

    def __call__(self) -> None:
        self.close()


class ReportFeed:
    def __init__(self, store: DocumentStore):
        self._store = store

    def subscribe(self, owner_id: str, on_reports_changed: ReportsCallback) -> FeedSubscription:
        """Live feed of owner_id's reports. Must be called from the running event loop."""
        subscription = FeedSubscription(owner_id, on_reports_changed)
        subscription.attach(self._store.watch(owner_query(owner_id), subscription.on_snapshot))
        return subscription

    async def fetch(self, owner_id: str) -> List[IncidentReport]:
        records = await self._store.query(owner_query(owner_id))
        return [IncidentReport.from_record(record) for record in records]
