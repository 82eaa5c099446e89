"""
JSON exporter.

Exports patient data as clean, human-readable JSON.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from kemr.models import Patient


def export_json(
    patient: Patient,
    output_path: Path | None = None,
    indent: int = 2,
    include_nulls: bool = False,
) -> str:
    """
    Export a patient to JSON format.

    Args:
        patient: The patient to export
        output_path: Optional path to write the JSON file
        indent: JSON indentation level
        include_nulls: Whether to include null values in output

    Returns:
        JSON string representation of the patient
    """
    data = patient.model_dump(mode="json", exclude_none=not include_nulls)
    json_str = json.dumps(data, indent=indent)

    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json_str)

    return json_str


def export_json_summary(patient: Patient) -> dict[str, Any]:
    """
    Summary of the patient for listings and patient cards.
    """
    latest = patient.latest_vitals
    return {
        "id": patient.id,
        "name": patient.name,
        "date_of_birth": patient.date_of_birth.isoformat(),
        "age_years": patient.age_years,
        "gender": patient.gender.value,
        "avatar_url": patient.avatar_url,
        "alerts": list(patient.alerts),
        "medication_count": len(patient.medications),
        "pending_reminders": sum(1 for r in patient.reminders if not r.is_completed),
        "overdue_reminders": sum(1 for r in patient.reminders if r.is_overdue()),
        "latest_bp": latest.blood_pressure if latest else None,
    }
