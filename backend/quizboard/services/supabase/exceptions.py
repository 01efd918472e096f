"""Custom exceptions for the Supabase service."""


class SupabaseAPIError(Exception):
    """Base exception for Supabase API errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class SupabaseAuthError(SupabaseAPIError):
    """Authentication failed (401/403)."""

    pass


class SupabaseServerError(SupabaseAPIError):
    """Server-side error (5xx) that persisted through retries."""

    pass


class SupabaseNetworkError(SupabaseAPIError):
    """Transport failure before a response was received."""

    pass


class SupabaseResponseError(SupabaseAPIError):
    """Response body could not be decoded."""

    pass
