"""
Identity provider - resolve the caller's session from a Firebase ID token.
"""

import logging
from typing import Optional

from firebase_admin import auth

from fieldwatch.config.firebase import initialize_firebase
from fieldwatch.core.errors import IdentityUnavailable
from fieldwatch.core.session import Identity, SessionContext
from fieldwatch.core.settings import settings

logger = logging.getLogger(__name__)


def parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def resolve_session(authorization: Optional[str]) -> SessionContext:
    """
    Build the session context for one request.

    In mock mode the token is read as "uid" or "uid:email" without any
    verification, so local clients can act as any user.

    Returns:
        SessionContext, anonymous when no valid token was sent

    Raises:
        IdentityUnavailable: the signing certificates could not be fetched
    """
    token = parse_bearer_token(authorization)
    if token is None:
        return SessionContext.anonymous()

    if settings.USE_MOCK_DB:
        user_id, _, email = token.partition(":")
        return SessionContext(Identity(user_id=user_id, email=email or None))

    try:
        decoded = auth.verify_id_token(token, app=initialize_firebase())
    except auth.CertificateFetchError as e:
        logger.error(f"Could not fetch token signing certificates: {e}")
        raise IdentityUnavailable() from e
    except auth.UserDisabledError as e:
        logger.warning(f"ID token belongs to a disabled account: {e}")
        return SessionContext.anonymous()
    except (auth.InvalidIdTokenError, ValueError) as e:
        logger.warning(f"Rejected ID token: {e}")
        return SessionContext.anonymous()

    return SessionContext(Identity(user_id=decoded["uid"], email=decoded.get("email")))
