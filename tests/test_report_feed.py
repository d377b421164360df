"""Report feed tests."""

import asyncio
from datetime import datetime, timedelta, timezone

from fieldwatch.services.report_feed import ReportFeed, owner_query

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

MY_REPORTS = [
    {"id": "r2", "severity": "Low", "owner_id": "user-1", "created_at": T0 + timedelta(minutes=2)},
    {"id": "r1", "severity": "High", "owner_id": "user-1", "created_at": T0},
]


def test_feed_watches_only_the_owners_reports(controllable_store) -> None:
    ReportFeed(controllable_store).subscribe("user-1", lambda reports: None)

    (watch,) = controllable_store.watches
    assert watch.query == owner_query("user-1")
    assert watch.query.filters == (("owner_id", "user-1"),)
    assert watch.query.order_by == "created_at"
    assert watch.query.descending is True


def test_feed_publishes_each_snapshot(controllable_store) -> None:
    received = []
    ReportFeed(controllable_store).subscribe("user-1", received.append)

    controllable_store.push("reports", MY_REPORTS)

    assert [report.id for report in received[-1]] == ["r2", "r1"]
    assert received[-1][1].severity == "High"
    assert received[-1][1].created_at == T0


def test_hide_locally_removes_item_without_writing(controllable_store) -> None:
    received = []
    subscription = ReportFeed(controllable_store).subscribe("user-1", received.append)
    controllable_store.push("reports", MY_REPORTS)

    assert subscription.hide_locally("r1") is True

    assert [report.id for report in received[-1]] == ["r2"]
    assert controllable_store.created == []


def test_hidden_item_stays_hidden_on_later_snapshots(controllable_store) -> None:
    received = []
    subscription = ReportFeed(controllable_store).subscribe("user-1", received.append)
    controllable_store.push("reports", MY_REPORTS)
    subscription.hide_locally("r1")

    controllable_store.push("reports", MY_REPORTS)

    assert [report.id for report in received[-1]] == ["r2"]
    assert [report.id for report in subscription.reports] == ["r2"]


def test_hiding_unknown_item_does_not_republish(controllable_store) -> None:
    received = []
    subscription = ReportFeed(controllable_store).subscribe("user-1", received.append)
    controllable_store.push("reports", MY_REPORTS)

    assert subscription.hide_locally("nope") is False
    assert len(received) == 1


def test_hiding_is_per_subscription(controllable_store) -> None:
    feed = ReportFeed(controllable_store)
    first, second = [], []
    hiding = feed.subscribe("user-1", first.append)
    feed.subscribe("user-1", second.append)
    controllable_store.push("reports", MY_REPORTS)

    hiding.hide_locally("r2")

    assert [report.id for report in first[-1]] == ["r1"]
    assert [report.id for report in second[-1]] == ["r2", "r1"]


def test_no_delivery_after_close(controllable_store) -> None:
    received = []
    subscription = ReportFeed(controllable_store).subscribe("user-1", received.append)

    subscription()
    controllable_store.push("reports", MY_REPORTS)

    assert received == []
    assert subscription.reports == []
    assert subscription.hide_locally("r1") is False
    assert controllable_store.watches[0].closed


def test_new_report_reaches_live_feed(memory_store) -> None:
    async def scenario():
        received = []
        subscription = ReportFeed(memory_store).subscribe("user-1", received.append)
        await asyncio.sleep(0)
        await memory_store.create("reports", {"owner_id": "user-1", "severity": "High"}, server_timestamp_field="created_at")
        await memory_store.create("reports", {"owner_id": "someone-else", "severity": "Low"}, server_timestamp_field="created_at")
        await asyncio.sleep(0)
        subscription.close()
        return received

    received = asyncio.run(scenario())

    assert received[0] == []
    assert [report.owner_id for report in received[-1]] == ["user-1"]


def test_fetch_returns_owner_reports(memory_store) -> None:
    memory_store.seed(
        {
            "reports": {
                "a": {"owner_id": "user-1", "severity": "High", "created_at": T0},
                "b": {"owner_id": "user-2", "severity": "Low", "created_at": T0},
            }
        }
    )

    reports = asyncio.run(ReportFeed(memory_store).fetch("user-1"))

    assert [report.id for report in reports] == ["a"]
