"""
Upload endpoints - turn captured media into durable URLs before a report
is submitted.
"""

import logging

from fastapi import APIRouter, Depends, File, UploadFile, status

from fieldwatch.core.session import SessionContext
from fieldwatch.dependencies import get_session, get_upload_pipeline
from fieldwatch.models.upload import MediaKind, UploadResult
from fieldwatch.services.upload_pipeline import UploadPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["Uploads"])


@router.post("/{kind}", response_model=UploadResult, status_code=status.HTTP_201_CREATED)
async def upload_media(
    kind: MediaKind,
    file: UploadFile = File(...),
    session: SessionContext = Depends(get_session),
    pipeline: UploadPipeline = Depends(get_upload_pipeline),
):
    """
    Upload a photo (`image`) or voice note (`audio`).

    Returns the durable URL to put in the report draft.
    """
    identity = session.require_user()
    data = await file.read()
    logger.info(f"📤 POST /uploads/{kind.value} from {identity.user_id} ({len(data)} bytes)")
    return await pipeline.upload(data, kind)
