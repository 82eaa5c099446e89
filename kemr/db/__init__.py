"""
Database module for the dashboard.

Provides the Supabase client and repository classes for data access.
"""

from kemr.db.client import get_client, is_configured, reset_clients, SupabaseClient
from kemr.db.repositories import (
  PatientRepository,
  DraftRepository,
  MetaRepository,
)

__all__ = [
  "get_client",
  "is_configured",
  "reset_clients",
  "SupabaseClient",
  "PatientRepository",
  "DraftRepository",
  "MetaRepository",
]
