"""
Data models for the clinical dashboard.
"""

from kemr.models.patient import (
    AiSummary,
    ClinicalNote,
    Gender,
    LabResult,
    LabStatus,
    Medication,
    Patient,
    Reminder,
    ReminderStatus,
    TimelineEvent,
    TimelineEventType,
    VitalsReading,
    generate_id,
    generate_mrn,
)
from kemr.models.forms import (
    FORMS,
    AlertForm,
    ClinicalNoteForm,
    LabResultForm,
    MedicationForm,
    PatientForm,
    ReminderForm,
    TimelineEventForm,
    VitalsForm,
    form_errors,
)

__all__ = [
    "AiSummary",
    "ClinicalNote",
    "Gender",
    "LabResult",
    "LabStatus",
    "Medication",
    "Patient",
    "Reminder",
    "ReminderStatus",
    "TimelineEvent",
    "TimelineEventType",
    "VitalsReading",
    "generate_id",
    "generate_mrn",
    "FORMS",
    "AlertForm",
    "ClinicalNoteForm",
    "LabResultForm",
    "MedicationForm",
    "PatientForm",
    "ReminderForm",
    "TimelineEventForm",
    "VitalsForm",
    "form_errors",
]
