"""
Storage interface for dashboard state.

A store persists the whole patient list as one snapshot, plus form drafts
keyed by "<patient_id>:<form>".
"""

from typing import Any, Optional

from kemr.models import Patient


class PatientStore:
    """Abstract storage interface for patients and drafts."""

    def load_patients(self) -> list[Patient]:
        """Load all patients. Falls back to the demo patients when empty."""
        raise NotImplementedError

    def save_patients(self, patients: list[Patient]) -> None:
        """Replace the stored patient list."""
        raise NotImplementedError

    def get_draft(self, key: str) -> Optional[dict[str, Any]]:
        """Retrieve a stored draft."""
        raise NotImplementedError

    def save_draft(self, key: str, data: dict[str, Any]) -> None:
        """Store a draft, replacing any previous one."""
        raise NotImplementedError

    def delete_draft(self, key: str) -> None:
        """Delete a draft. Missing drafts are ignored."""
        raise NotImplementedError

    def reset(self) -> list[Patient]:
        """Discard all state and restore the demo patients."""
        raise NotImplementedError


def draft_key(patient_id: str, form: str) -> str:
    return f"{patient_id}:{form}"
