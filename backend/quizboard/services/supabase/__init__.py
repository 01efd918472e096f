"""Supabase ranked-data provider integration."""

from .client import SupabaseClient, create_supabase_client
from .config import SupabaseConfig
from .exceptions import (
    SupabaseAPIError,
    SupabaseAuthError,
    SupabaseNetworkError,
    SupabaseResponseError,
    SupabaseServerError,
)
from .models import LeaderboardRpcParams

__all__ = [
    "SupabaseClient",
    "create_supabase_client",
    "SupabaseConfig",
    "SupabaseAPIError",
    "SupabaseAuthError",
    "SupabaseNetworkError",
    "SupabaseResponseError",
    "SupabaseServerError",
    "LeaderboardRpcParams",
]
