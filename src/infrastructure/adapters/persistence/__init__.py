"""Identity Store persistence adapters."""

from src.infrastructure.adapters.persistence.supabase_identity_store import (
    SupabaseIdentityStore,
)

__all__: list[str] = ["SupabaseIdentityStore"]
