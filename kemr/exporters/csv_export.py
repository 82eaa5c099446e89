"""
CSV exporter.

Cells containing a quote, comma or newline are quoted with inner quotes
doubled; None becomes an empty cell. The header row is the keys of the
first row.
"""

from __future__ import annotations

import csv
import io
import logging
from pathlib import Path
from typing import Any

from kemr.exporters.sections import (
    PATIENT_SECTIONS,
    all_patients_rows,
    resolve_options,
    section_rows,
)
from kemr.models import Patient


logger = logging.getLogger(__name__)


def rows_to_csv(rows: list[dict[str, Any]]) -> str:
    """Serialize rows to CSV text. No rows gives an empty string."""
    if not rows:
        return ""
    headers = list(rows[0].keys())
    buf = io.StringIO()
    writer = csv.DictWriter(
        buf,
        fieldnames=headers,
        extrasaction="ignore",
        lineterminator="\n",
        quoting=csv.QUOTE_MINIMAL,
    )
    writer.writeheader()
    for row in rows:
        writer.writerow({h: ("" if row.get(h) is None else row.get(h)) for h in headers})
    return buf.getvalue().rstrip("\n")


def export_patient_csv(
    patient: Patient,
    options=None,
    output_path: Path | None = None,
) -> str:
    """
    Export one patient as a sectioned CSV document.

    Each selected section is written as its own table under a
    "# <Section Label>" line; tables are separated by a blank line.
    Empty sections keep their heading with no table.
    """
    sections = resolve_options(options, single_patient=True)
    blocks = []
    for section in sections:
        body = rows_to_csv(section_rows(patient, section))
        blocks.append(f"# {PATIENT_SECTIONS[section]}" + (f"\n{body}" if body else ""))
    text = "\n\n".join(blocks) + "\n"
    _write(text, output_path)
    return text


def export_all_csv(
    patients: list[Patient],
    options=None,
    output_path: Path | None = None,
) -> str:
    """Export every patient, one row each."""
    sections = resolve_options(options, single_patient=False)
    rows = all_patients_rows(patients, sections)
    if not rows:
        logger.warning("Export aborted: No data to export.")
        return ""
    text = rows_to_csv(rows) + "\n"
    _write(text, output_path)
    return text


def _write(text: str, output_path: Path | None) -> None:
    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(text, encoding="utf-8")
