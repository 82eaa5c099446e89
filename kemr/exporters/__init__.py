"""
Export functionality for the dashboard.
"""

from .csv_export import export_all_csv, export_patient_csv, rows_to_csv
from .json_export import export_json, export_json_summary
from .markdown import export_markdown
from .pdf import export_all_pdf, export_patient_pdf
from .sections import (
    ALL_PATIENTS_SECTIONS,
    PATIENT_SECTIONS,
    export_filename,
    resolve_options,
)

__all__ = [
    "export_all_csv",
    "export_patient_csv",
    "rows_to_csv",
    "export_json",
    "export_json_summary",
    "export_markdown",
    "export_all_pdf",
    "export_patient_pdf",
    "ALL_PATIENTS_SECTIONS",
    "PATIENT_SECTIONS",
    "export_filename",
    "resolve_options",
]
