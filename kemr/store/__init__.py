"""
Persistence for dashboard state.
"""

from kemr.config import Settings, get_settings
from kemr.store.base import PatientStore, draft_key
from kemr.store.local import LocalStore
from kemr.store.seed import demo_patients


def create_store(settings: Settings | None = None) -> PatientStore:
    """Build the store selected by KEMR_STORE."""
    settings = settings or get_settings()
    if settings.store_backend == "supabase":
        from kemr.store.supabase_store import SupabaseStore
        return SupabaseStore()
    return LocalStore(settings.state_path)


__all__ = [
    "PatientStore",
    "LocalStore",
    "create_store",
    "demo_patients",
    "draft_key",
]
