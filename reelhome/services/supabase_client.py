"""Supabase client wrapper with async context manager support and gateway results."""

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from supabase import AsyncClient, acreate_client

from reelhome.utils.config import Settings
from reelhome.utils.errors import ConfigurationError, SupabaseError
from reelhome.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

T = TypeVar("T")

# Global client instance (singleton pattern)
_client: Optional[AsyncClient] = None


async def get_supabase_client() -> AsyncClient:
    """Get or create the async Supabase client singleton."""
    global _client
    
    if _client is None:
        Settings.reload()
        url = Settings.SUPABASE_URL
        key = Settings.SUPABASE_ANON_KEY
        
        if not url or not key:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")
        
        try:
            _client = await acreate_client(url, key)
        except Exception as e:
            raise SupabaseError(f"Could not create Supabase client: {e}") from e
        logger.info("Supabase client initialized", url=url)
    
    return _client


def set_supabase_client(client: Optional[AsyncClient]) -> None:
    """Install an already-built client (or clear it with None)."""
    global _client
    _client = client


async def close_supabase_client() -> None:
    """Drop realtime channels and forget the client."""
    global _client
    if _client:
        await _client.remove_all_channels()
        _client = None
        logger.info("Supabase client closed")


class SupabaseClient:
    """Async context manager for the Supabase client."""
    
    def __init__(self):
        self.client: Optional[AsyncClient] = None
    
    async def __aenter__(self) -> AsyncClient:
        self.client = await get_supabase_client()
        return self.client
    
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                error=str(exc_val),
                type=exc_type.__name__
            )
        return False


@dataclass(frozen=True)
class GatewayResult(Generic[T]):
    """Outcome of one backend call.

    On failure ``data`` holds the empty value for the call (``[]``, ``None``
    or ``False``) so callers that only read ``data`` see "got nothing".
    """
    ok: bool
    data: T
    error: Optional[str] = None

    @classmethod
    def success(cls, data: T) -> "GatewayResult[T]":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str, empty: T) -> "GatewayResult[T]":
        return cls(ok=False, data=empty, error=error)

    def __bool__(self) -> bool:
        return self.ok


def first_row(result: Any) -> Optional[dict]:
    """First row of a postgrest response, or None."""
    data = getattr(result, "data", None)
    return data[0] if data and len(data) > 0 else None


def describe_error(error: Exception) -> dict[str, Any]:
    """Backend error detail for logging (postgrest APIError carries code/hint/details)."""
    detail: dict[str, Any] = {"error": str(error), "error_type": type(error).__name__}
    for attr in ("code", "details", "hint"):
        value = getattr(error, attr, None)
        if value:
            detail[attr] = value
    return detail
