"""
Submission coordinator - validate a report draft and commit one record.

DESIGN NOTE:
- Media is uploaded before submit; the draft only carries durable URLs
- One create per submit, stamped with the caller's id and the server clock
- A failed write is surfaced, never retried; uploaded media stays orphaned
"""

import logging
from typing import Optional

from fieldwatch.core.errors import SubmissionError, ValidationError
from fieldwatch.models.location import GeoPoint
from fieldwatch.models.report import REPORTS_COLLECTION, ReportDraft, Severity
from fieldwatch.models.upload import MediaKind, UploadResult
from fieldwatch.services.contracts import DocumentStore, IdentityProvider, LocationProvider
from fieldwatch.services.location import acquire_location
from fieldwatch.services.upload_pipeline import MediaHandle, UploadPipeline

logger = logging.getLogger(__name__)


class SubmissionCoordinator:
    """
    Drives a ReportDraft from capture to a stored `reports` document.
    """

    def __init__(self, store: DocumentStore, session: IdentityProvider):
        self._store = store
        self._session = session

    async def stamp_location(
        self,
        draft: ReportDraft,
        provider: LocationProvider,
        timeout: Optional[float] = None,
    ) -> GeoPoint:
        """Capture the report location once (permission gate + one bounded fix)."""
        location = await acquire_location(provider, timeout=timeout)
        draft.location = location
        return location

    async def attach_media(
        self,
        draft: ReportDraft,
        pipeline: UploadPipeline,
        media: MediaHandle,
        kind: MediaKind,
    ) -> UploadResult:
        """
        Upload evidence and record its durable URL on the draft.

        A failed upload leaves the draft untouched.
        """
        result = await pipeline.upload(media, kind)
        if MediaKind(kind) == MediaKind.IMAGE:
            draft.image_url = result.durable_url
        else:
            draft.audio_url = result.durable_url
        return result

    async def submit(self, draft: ReportDraft) -> str:
        """
        Create one IncidentReport from a complete draft.

        Args:
            draft: Report draft with image_url, severity, contact and location

        Returns:
            str: Document ID of the created report

        Raises:
            Unauthenticated: no active session
            ValidationError: a required field is missing or severity is unknown
            SubmissionError: the store rejected the write
        """
        identity = self._session.require_user()

        missing = draft.missing_fields()
        if missing:
            logger.info(f"Report draft from {identity.user_id} incomplete: {missing}")
            raise ValidationError(missing)

        severity = Severity.parse(draft.severity)
        if severity is None:
            raise ValidationError(message=f"Severity must be one of High, Medium, Low (got {draft.severity!r}).")

        record = {
            "image_url": draft.image_url.strip(),
            "severity": severity.value,
            "contact": draft.contact.strip(),
            "location": draft.location.to_record(),
            "audio_url": draft.audio_url or None,
            "owner_id": identity.user_id,
        }

        try:
            report_id = await self._store.create(REPORTS_COLLECTION, record, server_timestamp_field="created_at")
        except Exception as e:
            logger.error(f"Failed to save report for {identity.user_id}: {e}", exc_info=True)
            raise SubmissionError() from e

        logger.info(f"✅ Report saved: {report_id} (severity={severity.value}, owner={identity.user_id})")
        draft.clear()
        return report_id
