"""
Repository classes for database operations.

Each repository handles CRUD operations for a specific table,
providing a clean interface for the Supabase store.
"""

from typing import Optional, Any

from kemr.db.client import get_client, SupabaseClient


class BaseRepository:
  """Base class for all repositories."""

  table_name: str = ""

  def __init__(self, client: Optional[SupabaseClient] = None):
    """
    Initialize repository with optional client.

    Args:
      client: Supabase client to use. If None, gets default client.
    """
    self._client = client or get_client()

  @property
  def table(self):
    """Get the table reference."""
    return self._client.table(self.table_name)

  def _to_dict(self, obj: Any) -> dict:
    """Convert object to dict for storage."""
    if hasattr(obj, "model_dump"):
      return obj.model_dump(mode="json")
    elif isinstance(obj, dict):
      return obj
    else:
      raise ValueError(f"Cannot convert {type(obj)} to dict")


class PatientRepository(BaseRepository):
  """Repository for patient records. Each row is (id, name, record json)."""

  table_name = "patients"

  def get_all(self) -> list[dict]:
    """Get all patient rows, oldest first."""
    response = self.table.select("*").order("created_at").execute()
    return response.data or []

  def upsert_many(self, patients: list[Any]) -> list[dict]:
    """Insert or update patient rows."""
    rows = []
    for patient in patients:
      record = self._to_dict(patient)
      rows.append({
        "id": record["id"],
        "name": record["name"],
        "created_at": record.get("created_at"),
        "record": record,
      })
    if not rows:
      return []
    response = self.table.upsert(rows).execute()
    return response.data or []

  def delete_except(self, keep_ids: list[str]) -> int:
    """Delete every patient whose MRN is not in keep_ids."""
    existing = self.table.select("id").execute().data or []
    stale = [row["id"] for row in existing if row["id"] not in set(keep_ids)]
    if not stale:
      return 0
    self.table.delete().in_("id", stale).execute()
    return len(stale)

  def delete_all(self) -> None:
    """Delete every patient row."""
    self.table.delete().neq("id", "").execute()


class DraftRepository(BaseRepository):
  """Repository for form drafts keyed by '<mrn>:<form>'."""

  table_name = "drafts"

  def get(self, key: str) -> Optional[dict]:
    """Get draft data by key."""
    response = self.table.select("*").eq("key", key).execute()
    return response.data[0]["data"] if response.data else None

  def put(self, key: str, data: dict) -> dict:
    """Create or replace a draft."""
    response = self.table.upsert({"key": key, "data": data}).execute()
    return response.data[0] if response.data else None

  def delete(self, key: str) -> bool:
    """Delete a draft."""
    response = self.table.delete().eq("key", key).execute()
    return len(response.data) > 0 if response.data else False

  def delete_all(self) -> None:
    """Delete every draft."""
    self.table.delete().neq("key", "").execute()


class MetaRepository(BaseRepository):
  """Repository for store-level flags, one JSON value per key."""

  table_name = "meta"

  def get(self, key: str) -> Any:
    """Get a flag value, or None when unset."""
    response = self.table.select("*").eq("key", key).execute()
    return response.data[0]["value"] if response.data else None

  def put(self, key: str, value: Any) -> None:
    """Set a flag value."""
    self.table.upsert({"key": key, "value": value}).execute()
