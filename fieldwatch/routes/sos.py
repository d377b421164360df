"""
SOS endpoint - emergency alert dispatch.
"""

import logging

from fastapi import APIRouter, Depends, status

from fieldwatch.dependencies import get_sos_dispatcher
from fieldwatch.models.location import GeoPoint
from fieldwatch.models.sos import SOSAlert, SOSRequest
from fieldwatch.services.location import ReportedLocationProvider
from fieldwatch.services.sos_dispatcher import SOSDispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sos", tags=["SOS"])


@router.post("", response_model=SOSAlert, status_code=status.HTTP_201_CREATED)
async def send_sos(
    request: SOSRequest,
    dispatcher: SOSDispatcher = Depends(get_sos_dispatcher),
):
    """
    Send an emergency SOS alert at the device's current position.

    403 if the user refused location access; 503 if the alert could not be
    recorded.
    """
    position = None
    if request.latitude is not None and request.longitude is not None:
        position = GeoPoint(latitude=request.latitude, longitude=request.longitude)

    provider = ReportedLocationProvider(request.location_permission, position)
    return await dispatcher.dispatch(provider)
