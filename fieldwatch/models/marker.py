"""
Map markers derived from live report and SOS snapshots.

MapMarker is a tagged union discriminated on `kind`; markers are never
persisted.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, TypeAdapter

from fieldwatch.models.location import GeoPoint


class SourceKind(str, Enum):
    REPORT = "report"
    SOS = "sos"


class _BaseMarker(BaseModel):
    id: str
    location: GeoPoint
    status: str = "Active"
    label: str
    description: str
    pin_color: str
    contact: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def key(self) -> Tuple[SourceKind, str]:
        return SourceKind(self.kind), self.id


class ReportMarker(_BaseMarker):
    kind: Literal["report"] = "report"
    severity: Optional[str] = None
    image_url: Optional[str] = None


class SOSMarker(_BaseMarker):
    kind: Literal["sos"] = "sos"
    owner_email: Optional[str] = None


MapMarker = Annotated[Union[ReportMarker, SOSMarker], Field(discriminator="kind")]

map_markers_adapter = TypeAdapter(list[MapMarker])
