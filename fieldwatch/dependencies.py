from typing import Optional

from fastapi import Depends, Header, Query, WebSocket

from fieldwatch.config.firebase import get_document_store, get_object_store
from fieldwatch.core.session import SessionContext
from fieldwatch.services.contracts import DocumentStore, ObjectStore
from fieldwatch.services.identity import resolve_session
from fieldwatch.services.live_map import LiveMapMultiplexer
from fieldwatch.services.report_feed import ReportFeed
from fieldwatch.services.sos_dispatcher import SOSDispatcher
from fieldwatch.services.submission_service import SubmissionCoordinator
from fieldwatch.services.upload_pipeline import UploadPipeline


def get_session(authorization: Optional[str] = Header(None)) -> SessionContext:
    return resolve_session(authorization)


def get_ws_session(websocket: WebSocket, token: Optional[str] = Query(None)) -> SessionContext:
    # Browsers cannot set headers on a WebSocket handshake, so accept ?token= too
    if token:
        return resolve_session(f"Bearer {token}")
    return resolve_session(websocket.headers.get("authorization"))


def get_upload_pipeline(object_store: ObjectStore = Depends(get_object_store)) -> UploadPipeline:
    return UploadPipeline(object_store)


def get_submission_coordinator(
    store: DocumentStore = Depends(get_document_store),
    session: SessionContext = Depends(get_session),
) -> SubmissionCoordinator:
    return SubmissionCoordinator(store, session)


def get_sos_dispatcher(
    store: DocumentStore = Depends(get_document_store),
    session: SessionContext = Depends(get_session),
) -> SOSDispatcher:
    return SOSDispatcher(store, session)


def get_live_map(store: DocumentStore = Depends(get_document_store)) -> LiveMapMultiplexer:
    return LiveMapMultiplexer(store)


def get_report_feed(store: DocumentStore = Depends(get_document_store)) -> ReportFeed:
    return ReportFeed(store)
