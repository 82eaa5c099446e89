"""
Core data models for the clinical dashboard.

These Pydantic models define the stored representation of a patient record.
All persistence, export and summary operations work with these models.
"""

from __future__ import annotations

import re
import time
from datetime import date, datetime, timezone
from enum import Enum
from typing import Iterable
from uuid import uuid4

from pydantic import BaseModel, Field, computed_field


BP_PATTERN = re.compile(r"^\s*(\d{2,3})\s*/\s*(\d{2,3})\s*$")


def generate_id() -> str:
    """Generate a unique identifier."""
    return str(uuid4())[:8]


def generate_mrn(existing: Iterable[str] = ()) -> str:
    """
    Generate a medical record number.

    MRNs are "MRN" followed by the last seven digits of the epoch
    milliseconds, bumped until they do not collide with `existing`.
    """
    taken = set(existing)
    n = int(str(int(time.time() * 1000))[-7:])
    while True:
        mrn = f"MRN{n % 10_000_000:07d}"
        if mrn not in taken:
            return mrn
        n += 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class LabStatus(str, Enum):
    NORMAL = "Normal"
    ABNORMAL = "Abnormal"
    CRITICAL = "Critical"


class ReminderStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class TimelineEventType(str, Enum):
    ADMISSION = "Admission"
    DISCHARGE = "Discharge"
    DIAGNOSIS = "Diagnosis"
    SURGERY = "Surgery"
    MEDICATION = "Medication"
    LAB = "Lab"


# =============================================================================
# CLINICAL DATA
# =============================================================================


class VitalsReading(BaseModel):
    """A single set of vital signs."""
    id: str = Field(default_factory=generate_id)
    date: datetime = Field(default_factory=utcnow)
    blood_pressure: str = Field(description="Systolic/diastolic in mmHg, e.g. 120/80")
    heart_rate: int = Field(description="Beats per minute")
    temperature: float = Field(description="Degrees Celsius")
    respiratory_rate: int = Field(description="Breaths per minute")
    oxygen_saturation: int = Field(description="SpO2 percentage")

    def _bp_parts(self) -> tuple[int, int] | None:
        match = BP_PATTERN.match(self.blood_pressure)
        if not match:
            return None
        return int(match.group(1)), int(match.group(2))

    @computed_field
    @property
    def systolic(self) -> int | None:
        parts = self._bp_parts()
        return parts[0] if parts else None

    @computed_field
    @property
    def diastolic(self) -> int | None:
        parts = self._bp_parts()
        return parts[1] if parts else None

    @computed_field
    @property
    def is_bp_abnormal(self) -> bool:
        return self.systolic is not None and self.systolic > 140


class LabResult(BaseModel):
    """A laboratory result."""
    id: str = Field(default_factory=generate_id)
    test_name: str
    result: str
    reference_range: str
    date: date
    status: LabStatus = LabStatus.NORMAL


class Medication(BaseModel):
    """A medication on the patient's current list."""
    id: str = Field(default_factory=generate_id)
    name: str
    dosage: str
    frequency: str
    duration: str = "Ongoing"


class ClinicalNote(BaseModel):
    """A clinical note entry."""
    id: str = Field(default_factory=generate_id)
    date: date
    author: str
    specialty: str
    content: str


class Reminder(BaseModel):
    """A follow-up task for the care team."""
    id: str = Field(default_factory=generate_id)
    title: str
    due_date: date
    status: ReminderStatus = ReminderStatus.PENDING

    @property
    def is_completed(self) -> bool:
        return self.status == ReminderStatus.COMPLETED

    def is_overdue(self, today: date | None = None) -> bool:
        """Pending reminders whose due date has passed."""
        today = today or date.today()
        return not self.is_completed and self.due_date < today


class TimelineEvent(BaseModel):
    """A dated event in the patient's clinical history."""
    id: str = Field(default_factory=generate_id)
    date: date
    event_type: TimelineEventType
    title: str
    details: str | None = None


class AiSummary(BaseModel):
    """Structured narrative summary produced by the LLM."""
    summary: str = Field(
        description="A brief, one-paragraph clinical summary of the patient's current status."
    )
    key_concerns: list[str] = Field(
        description="A list of the most important clinical concerns or risks."
    )
    suggested_actions: list[str] = Field(
        description=(
            "A list of recommended next steps, such as specific tests, "
            "referrals, or medication adjustments."
        )
    )


# =============================================================================
# PATIENT
# =============================================================================


class Patient(BaseModel):
    """
    Complete patient record.

    This is the root model persisted by the store and rendered by the
    exporters. Lists keep insertion order; use the sorted_* views for display.
    """
    id: str
    name: str
    date_of_birth: date
    gender: Gender
    national_id: str
    nhif_number: str
    avatar_url: str = ""

    alerts: list[str] = Field(default_factory=list)
    vitals: list[VitalsReading] = Field(default_factory=list)
    labs: list[LabResult] = Field(default_factory=list)
    medications: list[Medication] = Field(default_factory=list)
    notes: list[ClinicalNote] = Field(default_factory=list)
    reminders: list[Reminder] = Field(default_factory=list)
    timeline: list[TimelineEvent] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=utcnow)

    @computed_field
    @property
    def age_years(self) -> int:
        today = date.today()
        return today.year - self.date_of_birth.year - (
            (today.month, today.day) < (self.date_of_birth.month, self.date_of_birth.day)
        )

    @property
    def latest_vitals(self) -> VitalsReading | None:
        """Most recent vitals reading, if any."""
        if not self.vitals:
            return None
        return max(self.vitals, key=lambda v: v.date)

    def sorted_reminders(self) -> list[Reminder]:
        """Pending reminders first, each group by due date ascending."""
        return sorted(self.reminders, key=lambda r: (r.is_completed, r.due_date))

    def sorted_timeline(self) -> list[TimelineEvent]:
        """Newest events first."""
        return sorted(self.timeline, key=lambda e: e.date, reverse=True)

    def sorted_labs(self) -> list[LabResult]:
        return sorted(self.labs, key=lambda lab: lab.date, reverse=True)

    def sorted_vitals(self) -> list[VitalsReading]:
        return sorted(self.vitals, key=lambda v: v.date, reverse=True)

    def has_alert(self, text: str) -> bool:
        needle = text.strip().lower()
        return any(a.strip().lower() == needle for a in self.alerts)

    def clinical_context(self) -> dict:
        """Record without presentation-only fields, for the summary prompt."""
        return self.model_dump(mode="json", exclude={"avatar_url"})
