"""
SOS dispatcher - resolve identity, location and contact, then emit exactly
one `sos_alerts` record.

Gates run strictly in order and any of the first three aborts the saga:
1. identity   -> Unauthenticated
2. permission -> PermissionDenied
3. location   -> LocationUnavailable (bounded by LOCATION_TIMEOUT_SECONDS)
4. contact    -> never fails; falls back to "Not provided"

Creating the record is the only side effect. If it fails nothing was sent
and DispatchError is raised.
"""

import logging
from typing import Optional

from fieldwatch.core.errors import DispatchError
from fieldwatch.models.sos import (
    CONTACT_NOT_PROVIDED,
    SOS_ALERT_TYPE,
    SOS_COLLECTION,
    USERS_COLLECTION,
    SOSAlert,
    SOSStatus,
)
from fieldwatch.services.contracts import DocumentStore, IdentityProvider, LocationProvider
from fieldwatch.services.location import acquire_location

logger = logging.getLogger(__name__)


class SOSDispatcher:
    """Runs the SOS saga for one session."""

    def __init__(
        self,
        store: DocumentStore,
        session: IdentityProvider,
        location_timeout: Optional[float] = None,
    ):
        self._store = store
        self._session = session
        self._location_timeout = location_timeout

    async def dispatch(self, location_provider: LocationProvider) -> SOSAlert:
        identity = self._session.require_user()
        logger.warning(f"🚨 SOS triggered by {identity.user_id}")

        location = await acquire_location(location_provider, timeout=self._location_timeout)
        contact = await self.resolve_contact(identity.user_id)

        record = {
            "owner_id": identity.user_id,
            "owner_email": identity.email,
            "location": location.to_record(),
            "status": SOSStatus.ACTIVE.value,
            "type": SOS_ALERT_TYPE,
            "contact": contact,
        }

        try:
            alert_id = await self._store.create(SOS_COLLECTION, record, server_timestamp_field="created_at")
        except Exception as e:
            logger.critical(f"SOS from {identity.user_id} was NOT recorded: {e}", exc_info=True)
            raise DispatchError() from e

        logger.warning(f"🚨 SOS alert {alert_id} created for {identity.user_id}")
        return SOSAlert(
            id=alert_id,
            owner_id=identity.user_id,
            owner_email=identity.email,
            location=location,
            contact=contact,
            status=SOSStatus.ACTIVE,
            type=SOS_ALERT_TYPE,
        )

    async def resolve_contact(self, user_id: str) -> str:
        """
        Contact number from the caller's profile.

        A missing profile, a blank field or a failed read all degrade to
        "Not provided" instead of blocking the alert.
        """
        try:
            profile = await self._store.get(USERS_COLLECTION, user_id)
        except Exception as e:
            logger.warning(f"Profile lookup for {user_id} failed, sending SOS without contact: {e}")
            return CONTACT_NOT_PROVIDED

        contact = (profile or {}).get("contact")
        if contact is None or not str(contact).strip():
            return CONTACT_NOT_PROVIDED
        return str(contact).strip()
