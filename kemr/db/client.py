"""
Supabase client wrapper for the dashboard.

Provides singleton access to the Supabase client used by the Supabase store
and the auth middleware.
"""

import os
from typing import Optional

from supabase import create_client, Client


class SupabaseConfig:
  """Configuration for Supabase connection."""

  def __init__(self):
    self.url = os.environ.get("SUPABASE_URL")
    self.anon_key = os.environ.get("SUPABASE_ANON_KEY")
    self.service_key = os.environ.get("SUPABASE_SERVICE_KEY")

  @property
  def is_configured(self) -> bool:
    """Check if Supabase is properly configured."""
    return bool(self.url and (self.service_key or self.anon_key))

  def validate(self) -> None:
    """Raise error if not properly configured."""
    if not self.url:
      raise ValueError("SUPABASE_URL environment variable not set")
    if not (self.service_key or self.anon_key):
      raise ValueError("SUPABASE_SERVICE_KEY or SUPABASE_ANON_KEY environment variable not set")


class SupabaseClient:
  """
  Wrapper around the Supabase client.

  Only table access is needed; patient records are stored as JSON documents.
  """

  def __init__(self, client: Client):
    self._client = client

  def table(self, name: str):
    """Get a table reference for queries."""
    return self._client.table(name)


# -----------------------------------------------------------------------------
# Singleton instances
# -----------------------------------------------------------------------------

_client: Optional[SupabaseClient] = None
_config: Optional[SupabaseConfig] = None


def get_config() -> SupabaseConfig:
  """Get the Supabase configuration (singleton)."""
  global _config
  if _config is None:
    _config = SupabaseConfig()
  return _config


def get_client() -> SupabaseClient:
  """
  Get the Supabase client (singleton).

  Prefers the service_role key: the dashboard server is the only writer and
  performs its own access checks.
  """
  global _client
  if _client is None:
    config = get_config()
    config.validate()
    raw_client = create_client(config.url, config.service_key or config.anon_key)
    _client = SupabaseClient(raw_client)
  return _client


def is_configured() -> bool:
  """Check if Supabase is configured without raising errors."""
  return get_config().is_configured


def reset_clients() -> None:
  """Reset client singletons (useful for testing)."""
  global _client, _config
  _client = None
  _config = None
