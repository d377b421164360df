"""
Session context passed explicitly into every component that needs to know
who the caller is.
"""

from dataclasses import dataclass
from typing import Optional

from fieldwatch.core.errors import Unauthenticated


@dataclass(frozen=True)
class Identity:
    """Authenticated user as seen by the identity provider."""

    user_id: str
    email: Optional[str] = None


class SessionContext:
    """
    Identity provider bound to one caller.

    Built per request (HTTP) or per device session and handed to the
    submission coordinator and SOS dispatcher.
    """

    def __init__(self, identity: Optional[Identity] = None):
        self._identity = identity

    def current_user(self) -> Optional[Identity]:
        return self._identity

    def require_user(self) -> Identity:
        if self._identity is None:
            raise Unauthenticated()
        return self._identity

    @classmethod
    def anonymous(cls) -> "SessionContext":
        return cls(None)
