"""DB helpers for the lookup store (Supabase PostgREST)."""

from .errors import (
    SupabaseAuthError,
    SupabaseError,
    SupabaseNotFoundError,
)
from .mapping_store import SupabaseDomainMappingStore, build_mapping_store
from .supabase_client import SupabaseClient

__all__ = [
    "SupabaseAuthError",
    "SupabaseClient",
    "SupabaseDomainMappingStore",
    "SupabaseError",
    "SupabaseNotFoundError",
    "build_mapping_store",
]
