"""
Models for the media upload pipeline.
"""

from enum import Enum

from pydantic import BaseModel, Field


class MediaKind(str, Enum):
    """Kind of evidence attached to an incident report."""

    IMAGE = "image"
    AUDIO = "audio"


class UploadResult(BaseModel):
    """Durable location of an uploaded media object."""

    durable_url: str = Field(..., description="Fetchable URL, valid after the upload call returns")
    content_type: str = Field(..., description="MIME type stored with the object")
    object_key: str = Field(..., description="Key of the object inside the bucket")
