"""
Domain errors for the submission, upload and SOS flows.

Every failure is terminal where it happens: nothing here is retried
internally, the caller repeats the whole operation.
"""

from enum import Enum
from typing import Iterable, Optional


class FieldWatchError(Exception):
    """Base class for all FieldWatch domain errors."""

    user_message = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.user_message)


class Unauthenticated(FieldWatchError):
    """No active session. Clients should send the user to login."""

    user_message = "Please login first."


class PermissionDenied(FieldWatchError):
    """A device permission (location, microphone, storage) was refused."""

    def __init__(self, resource: str, message: Optional[str] = None):
        self.resource = resource
        super().__init__(message or f"{resource.capitalize()} access is required.")


class ValidationError(FieldWatchError):
    """Incomplete or malformed report draft. No network call was made."""

    def __init__(self, missing_fields: Iterable[str] = (), message: Optional[str] = None):
        self.missing_fields = list(missing_fields)
        if message is None:
            message = "Please fill all fields and upload an image."
            if self.missing_fields:
                message = f"{message} Missing: {', '.join(self.missing_fields)}"
        super().__init__(message)


class UploadFailureCause(str, Enum):
    PERMISSION_DENIED = "PermissionDenied"
    NETWORK_FAILURE = "NetworkFailure"
    ENCODING_FAILURE = "EncodingFailure"


class UploadError(FieldWatchError):
    """Media could not be turned into a durable URL."""

    def __init__(self, cause: UploadFailureCause, message: Optional[str] = None):
        self.cause = cause
        super().__init__(message or f"Failed to upload media ({cause.value}).")


class SubmissionError(FieldWatchError):
    """The report record could not be written to the document store."""

    user_message = "Failed to submit report."


class DispatchError(FieldWatchError):
    """The SOS alert record could not be created. The emergency was NOT recorded."""

    user_message = "Failed to send SOS alert. Please try again."


class LocationUnavailable(FieldWatchError):
    """No position fix could be obtained within the configured bound."""

    user_message = "Could not determine your current location."


class IdentityUnavailable(FieldWatchError):
    """The identity provider could not verify the caller's token right now."""

    user_message = "Sign-in could not be verified. Please try again shortly."
