"""
Supabase client initialization.

This module contains *only* the database connection setup. Repository functions
take the client as an explicit argument; the API layer obtains it through
`get_supabase()` (a FastAPI dependency) so tests can substitute a fake.

Environment variables required:
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (use a server-side key only on the backend)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Optional

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]

from quotegen.config import Settings, get_settings


class RepositoryError(RuntimeError):
    """Raised when a Supabase query fails (API error or error response)."""


def create_supabase_client(settings: Settings) -> Client:
    """Build a Supabase client, failing loudly if credentials are missing."""

    if not settings.supabase_url:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_URL. "
            "Set SUPABASE_URL to your Supabase project URL."
        )

    if not settings.supabase_key:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_KEY. "
            "Set SUPABASE_KEY to your Supabase API key."
        )

    return create_client(settings.supabase_url, settings.supabase_key)


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """Process-wide Supabase client, built on first use."""
    return create_supabase_client(get_settings())


def execute(query: Any, action: str) -> Any:
    """
    Run a query builder and normalize failures into RepositoryError.

    supabase-py raises postgrest APIError for most failures; older clients
    return a response carrying an `error` attribute instead. Both are handled.
    """
    from postgrest.exceptions import APIError

    try:
        response = query.execute()
    except APIError as e:
        raise RepositoryError(f"Failed to {action}: {e.message or e}") from e

    error: Optional[Any] = getattr(response, "error", None)
    if error:
        raise RepositoryError(f"Failed to {action}: {error}")

    return response


def rows_of(response: Any) -> list[dict[str, Any]]:
    return getattr(response, "data", None) or []


__all__ = [
    "Client",
    "RepositoryError",
    "create_supabase_client",
    "execute",
    "get_supabase",
    "rows_of",
]
