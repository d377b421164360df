"""
Location acquisition: permission gate followed by one bounded position fix.
"""

import asyncio
import logging
from typing import Optional

from fieldwatch.core.errors import LocationUnavailable, PermissionDenied
from fieldwatch.core.settings import settings
from fieldwatch.models.location import GeoPoint
from fieldwatch.services.contracts import LocationProvider

logger = logging.getLogger(__name__)


class ReportedLocationProvider:
    """
    Location capability backed by what the device reported with its request
    (permission outcome and, when granted, the fix it obtained).
    """

    def __init__(self, permission_granted: bool, position: Optional[GeoPoint] = None):
        self._permission_granted = permission_granted
        self._position = position

    async def request_permission(self) -> bool:
        return self._permission_granted

    async def current_position(self) -> GeoPoint:
        if self._position is None:
            raise LocationUnavailable("The device did not report a position fix.")
        return self._position


async def acquire_location(provider: LocationProvider, timeout: Optional[float] = None) -> GeoPoint:
    """
    Request location permission, then fetch a single position snapshot.

    Args:
        provider: Device location capability
        timeout: Bound on the position fix in seconds (defaults to
            LOCATION_TIMEOUT_SECONDS). The permission prompt is not bounded.

    Raises:
        PermissionDenied: the user refused location access
        LocationUnavailable: no fix, or no fix within the bound
    """
    if not await provider.request_permission():
        raise PermissionDenied("location")

    if timeout is None:
        timeout = settings.LOCATION_TIMEOUT_SECONDS

    try:
        return await asyncio.wait_for(provider.current_position(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Location fix timed out after {timeout}s")
        raise LocationUnavailable(f"No position fix within {timeout:g} seconds.")
    except LocationUnavailable:
        raise
    except Exception as e:
        logger.warning(f"Location fix failed: {e}")
        raise LocationUnavailable() from e
