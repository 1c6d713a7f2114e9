"""Error handling utilities."""

from typing import Optional


class ReelHomeError(Exception):
    """Base exception for the ReelHome client."""
    pass


class ConfigurationError(ReelHomeError):
    """Required configuration is missing or invalid."""
    pass


class SupabaseError(ReelHomeError):
    """Supabase operation error."""
    pass


class ListingValidationError(ReelHomeError):
    """Listing form failed validation before reaching the backend."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class AuthError(ReelHomeError):
    """Sign-in, sign-up or profile operation failed."""
    pass


class ChatError(ReelHomeError):
    """Chat operation error."""
    pass
