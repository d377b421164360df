"""
Pydantic models for incident reports.
These models handle the draft a field user fills in and the stored record.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from fieldwatch.models.location import GeoPoint


REPORTS_COLLECTION = "reports"


class Severity(str, Enum):
    """Severity levels a reporter can pick."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Severity"]:
        """Case-insensitive lookup. Returns None for unknown values."""
        if not value:
            return None
        normalized = value.strip().lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        return None


class ReportDraft(BaseModel):
    """
    In-progress report.

    Media is uploaded before submission (image_url / audio_url already hold
    durable URLs), location is stamped once when the form is opened.
    """

    image_url: Optional[str] = Field(None, description="Durable URL of the uploaded photo")
    severity: Optional[str] = Field(None, description="High, Medium or Low")
    contact: Optional[str] = Field(None, max_length=100, description="Contact number of the reporter")
    location: Optional[GeoPoint] = Field(None, description="Position captured when the report was started")
    audio_url: Optional[str] = Field(None, description="Durable URL of the voice note (optional)")

    class Config:
        json_schema_extra = {
            "example": {
                "image_url": "https://firebasestorage.googleapis.com/v0/b/demo/o/images%2F1.jpg?alt=media",
                "severity": "High",
                "contact": "555-0100",
                "location": {"latitude": 12.9, "longitude": 77.6},
                "audio_url": None,
            }
        }

    def missing_fields(self) -> List[str]:
        """Required fields that are absent or blank, in form order."""
        missing = []
        if not (self.image_url or "").strip():
            missing.append("image_url")
        if not (self.severity or "").strip():
            missing.append("severity")
        if not (self.contact or "").strip():
            missing.append("contact")
        if self.location is None:
            missing.append("location")
        return missing

    def clear(self) -> None:
        self.image_url = None
        self.severity = None
        self.contact = None
        self.location = None
        self.audio_url = None


class ReportCreated(BaseModel):
    id: str = Field(..., description="Document ID assigned by the store")


class IncidentReport(BaseModel):
    """A stored incident report as read back from the `reports` collection."""

    id: str = Field(..., description="Document ID")
    severity: Optional[str] = None
    contact: Optional[str] = None
    image_url: Optional[str] = None
    audio_url: Optional[str] = None
    location: Optional[GeoPoint] = None
    owner_id: Optional[str] = None
    created_at: Optional[datetime] = Field(None, description="Server-assigned; None while pending")

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "IncidentReport":
        """Build from a raw store record, tolerating missing fields."""
        from fieldwatch.utils.firestore_helpers import parse_location, parse_timestamp

        raw_location = record.get("location")
        return cls(
            id=str(record.get("id", "")),
            severity=record.get("severity"),
            contact=record.get("contact"),
            image_url=record.get("image_url"),
            audio_url=record.get("audio_url"),
            location=parse_location(raw_location) if raw_location is not None else None,
            owner_id=record.get("owner_id"),
            created_at=parse_timestamp(record.get("created_at")),
        )
