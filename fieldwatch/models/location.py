"""
Location model shared by reports, SOS alerts and map markers.
"""

from pydantic import BaseModel, Field


class GeoPoint(BaseModel):
    """A single {latitude, longitude} position snapshot."""

    latitude: float = Field(..., ge=-90, le=90, description="Latitude in decimal degrees")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude in decimal degrees")

    def to_record(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}


# Substituted for missing/malformed locations at the ingestion boundary
NULL_ISLAND = GeoPoint(latitude=0.0, longitude=0.0)
