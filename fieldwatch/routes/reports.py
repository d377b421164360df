"""
Report endpoints - submission and the caller's own report feed.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, WebSocket, status

from fieldwatch.core.session import SessionContext
from fieldwatch.dependencies import (
    get_report_feed,
    get_session,
    get_submission_coordinator,
    get_ws_session,
)
from fieldwatch.models.report import IncidentReport, ReportCreated, ReportDraft
from fieldwatch.routes.live import run_live_socket
from fieldwatch.services.report_feed import FeedSubscription, ReportFeed
from fieldwatch.services.submission_service import SubmissionCoordinator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])

WS_UNAUTHENTICATED = 4401


@router.post("", response_model=ReportCreated, status_code=status.HTTP_201_CREATED)
async def submit_report(
    draft: ReportDraft,
    coordinator: SubmissionCoordinator = Depends(get_submission_coordinator),
):
    """
    Submit an incident report.

    The image (and optional voice note) must already be uploaded through
    /uploads; the draft carries their durable URLs.
    """
    report_id = await coordinator.submit(draft)
    return ReportCreated(id=report_id)


@router.get("/mine", response_model=List[IncidentReport])
async def my_reports(
    session: SessionContext = Depends(get_session),
    feed: ReportFeed = Depends(get_report_feed),
):
    """The caller's reports, newest first."""
    identity = session.require_user()
    return await feed.fetch(identity.user_id)


def _serialize_reports(reports: List[IncidentReport]) -> dict:
    return {"type": "reports", "reports": [report.model_dump(mode="json") for report in reports]}


def _handle_feed_message(subscription: FeedSubscription, message: dict) -> None:
    if message.get("action") == "hide" and message.get("report_id"):
        subscription.hide_locally(str(message["report_id"]))


@router.websocket("/feed")
async def report_feed_socket(
    websocket: WebSocket,
    session: SessionContext = Depends(get_ws_session),
    feed: ReportFeed = Depends(get_report_feed),
):
    """
    Live feed of the caller's reports.

    Send {"action": "hide", "report_id": "..."} to remove a report from this
    feed only; the stored report is not changed.
    """
    identity = session.current_user()
    if identity is None:
        await websocket.close(code=WS_UNAUTHENTICATED)
        return

    await websocket.accept()
    await run_live_socket(
        websocket,
        lambda callback: feed.subscribe(identity.user_id, callback),
        _serialize_reports,
        on_message=_handle_feed_message,
    )
