"""
Supabase-backed store.

Same snapshot semantics as the local store, with one row per patient so the
records can also be queried from the Supabase dashboard. A `seeded` flag in
the meta table tells a fresh project (demo patients) from one whose patients
were all deleted (empty list).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import ValidationError

from kemr.db import DraftRepository, MetaRepository, PatientRepository, SupabaseClient
from kemr.errors import StorageError
from kemr.models import Patient
from kemr.store.base import PatientStore
from kemr.store.seed import demo_patients


logger = logging.getLogger(__name__)

SEEDED_KEY = "seeded"


class SupabaseStore(PatientStore):

    def __init__(self, client: Optional[SupabaseClient] = None):
        self.patients = PatientRepository(client)
        self.drafts = DraftRepository(client)
        self.meta = MetaRepository(client)
        self._seeded = False

    def _mark_seeded(self) -> None:
        if not self._seeded:
            self.meta.put(SEEDED_KEY, True)
            self._seeded = True

    def load_patients(self) -> list[Patient]:
        try:
            rows = self.patients.get_all()
            self._seeded = bool(rows) or bool(self.meta.get(SEEDED_KEY))
        except Exception as e:
            raise StorageError(f"Could not load patients from Supabase: {e}") from e
        if not self._seeded:
            logger.info("New Supabase project; using demo patients")
            return demo_patients()
        patients = []
        for row in rows:
            try:
                patients.append(Patient.model_validate(row["record"]))
            except ValidationError as e:
                logger.warning("Skipping unreadable patient record %s: %s", row.get("id"), e)
        return patients

    def save_patients(self, patients: list[Patient]) -> None:
        try:
            self.patients.upsert_many(patients)
            removed = self.patients.delete_except([p.id for p in patients])
            self._mark_seeded()
        except Exception as e:
            raise StorageError(f"Could not save patients to Supabase: {e}") from e
        if removed:
            logger.info("Removed %d deleted patient(s) from Supabase", removed)

    def get_draft(self, key: str) -> Optional[dict[str, Any]]:
        return self.drafts.get(key)

    def save_draft(self, key: str, data: dict[str, Any]) -> None:
        self.drafts.put(key, data)

    def delete_draft(self, key: str) -> None:
        self.drafts.delete(key)

    def reset(self) -> list[Patient]:
        patients = demo_patients()
        try:
            self.drafts.delete_all()
            self.patients.delete_all()
            self.patients.upsert_many(patients)
            self._mark_seeded()
        except Exception as e:
            raise StorageError(f"Could not reset Supabase state: {e}") from e
        return patients
