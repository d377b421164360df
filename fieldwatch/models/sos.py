"""
Models for emergency SOS alerts.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from fieldwatch.models.location import GeoPoint


SOS_COLLECTION = "sos_alerts"
USERS_COLLECTION = "users"

SOS_ALERT_TYPE = "Emergency SOS"
CONTACT_NOT_PROVIDED = "Not provided"


class SOSStatus(str, Enum):
    ACTIVE = "Active"
    RESOLVED = "Resolved"


class SOSAlert(BaseModel):
    """A created SOS alert."""

    id: str
    owner_id: str
    owner_email: Optional[str] = None
    location: GeoPoint
    contact: str = CONTACT_NOT_PROVIDED
    status: SOSStatus = SOSStatus.ACTIVE
    type: str = SOS_ALERT_TYPE
    created_at: Optional[datetime] = None


class SOSRequest(BaseModel):
    """
    SOS trigger sent by a device.

    The device reports whether the user granted location access and, if so,
    the position fix it obtained.
    """

    location_permission: bool = Field(..., description="Whether the user granted location access")
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
