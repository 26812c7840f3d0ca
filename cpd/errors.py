"""
CPD error types.

The calculation engine never raises; these cover the service layer around
it (loading a user's data, importing calculator drafts).
"""

from typing import Any, Dict, Optional

from django.utils import timezone


class CPDError(Exception):
    """
    Base exception for CPD service errors.

    Carries a stable error code, a message safe to show to the user and
    structured context for logging.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        user_message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.user_message = user_message or message
        self.context = context or {}
        self.timestamp = timezone.now()


class ProfileNotFoundError(CPDError):
    """Raised when a user has not completed CPD onboarding."""

    def __init__(self, user, **kwargs):
        super().__init__(
            message=f"No CPD profile for user '{user}'",
            error_code='PROFILE_NOT_FOUND',
            user_message="Complete your profile to start tracking CPD points.",
            context={'user_id': getattr(user, 'pk', None)},
            **kwargs
        )


class ImportPayloadError(CPDError):
    """Raised when a calculator import payload cannot be read."""

    def __init__(self, errors, **kwargs):
        super().__init__(
            message=f"Invalid calculator import payload: {errors}",
            error_code='INVALID_IMPORT_PAYLOAD',
            user_message="The calculator data could not be imported.",
            context={'errors': errors},
            **kwargs
        )
