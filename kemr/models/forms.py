"""
Input forms for the dashboard.

Every create operation takes one of these models. Validation failures are
reported as a field -> message map so a UI can show the message under the
offending input.
"""

from __future__ import annotations

import datetime as dt
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from kemr.models.patient import (
    BP_PATTERN,
    Gender,
    LabStatus,
    TimelineEventType,
)


ALERT_MAX_LENGTH = 50
REMINDER_TITLE_MAX_LENGTH = 100


def _required(value: Any, message: str) -> str:
    text = "" if value is None else str(value).strip()
    if not text:
        raise ValueError(message)
    return text


def _not_future(value: dt.date, message: str) -> dt.date:
    if value > dt.date.today():
        raise ValueError(message)
    return value


def form_errors(exc: ValidationError) -> dict[str, str]:
    """
    Flatten a pydantic ValidationError to {field: message}.

    Only the first message per field is kept. Messages raised from our own
    validators are returned verbatim; pydantic's built-in ones (missing,
    wrong type) keep their default text.
    """
    errors: dict[str, str] = {}
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ())) or "__root__"
        if field in errors:
            continue
        ctx_error = (err.get("ctx") or {}).get("error")
        errors[field] = str(ctx_error) if ctx_error is not None else err["msg"]
    return errors


class Form(BaseModel):
    """Base for input forms. Defaults are validated so blank forms fail."""
    model_config = ConfigDict(validate_default=True)


class PatientForm(Form):
    """New patient registration."""
    name: str = ""
    date_of_birth: dt.date | None = None
    gender: Gender = Gender.FEMALE
    national_id: str = ""
    nhif_number: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, v):
        return _required(v, "Name is required.")

    @field_validator("national_id", mode="before")
    @classmethod
    def _national_id(cls, v):
        return _required(v, "National ID is required.")

    @field_validator("nhif_number", mode="before")
    @classmethod
    def _nhif(cls, v):
        return _required(v, "NHIF number is required.")

    @field_validator("date_of_birth")
    @classmethod
    def _dob(cls, v):
        if v is None:
            raise ValueError("Date of birth is required.")
        return _not_future(v, "Date of birth cannot be in the future.")


class AlertForm(Form):
    text: str = ""

    @field_validator("text", mode="before")
    @classmethod
    def _text(cls, v):
        text = _required(v, "Alert cannot be empty.")
        if len(text) > ALERT_MAX_LENGTH:
            raise ValueError(f"Alert should not exceed {ALERT_MAX_LENGTH} characters.")
        return text


class VitalsForm(Form):
    blood_pressure: str = ""
    heart_rate: int | None = None
    temperature: float | None = None
    respiratory_rate: int | None = None
    oxygen_saturation: int | None = None

    @field_validator("blood_pressure", mode="before")
    @classmethod
    def _bp(cls, v):
        text = _required(v, "Blood pressure is required.")
        if not BP_PATTERN.match(text):
            raise ValueError("Blood pressure must look like 120/80.")
        return text.replace(" ", "")

    @field_validator("heart_rate", "temperature", "respiratory_rate", "oxygen_saturation")
    @classmethod
    def _positive(cls, v, info):
        label = info.field_name.replace("_", " ").capitalize()
        if v is None:
            raise ValueError(f"{label} is required.")
        if v <= 0:
            raise ValueError(f"{label} must be greater than zero.")
        if info.field_name == "oxygen_saturation" and v > 100:
            raise ValueError("Oxygen saturation cannot exceed 100%.")
        return v


class LabResultForm(Form):
    test_name: str = ""
    result: str = ""
    reference_range: str = ""
    date: dt.date | None = Field(default_factory=dt.date.today)
    status: LabStatus = LabStatus.NORMAL

    @field_validator("test_name", mode="before")
    @classmethod
    def _test_name(cls, v):
        return _required(v, "Test name is required.")

    @field_validator("result", mode="before")
    @classmethod
    def _result(cls, v):
        return _required(v, "Result is required.")

    @field_validator("reference_range", mode="before")
    @classmethod
    def _reference_range(cls, v):
        return _required(v, "Reference range is required.")

    @field_validator("date")
    @classmethod
    def _date(cls, v):
        if v is None:
            raise ValueError("Date is required.")
        return _not_future(v, "Date cannot be in the future.")


class MedicationForm(Form):
    name: str = ""
    dosage: str = ""
    frequency: str = ""
    duration: str = "Ongoing"

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, v):
        return _required(v, "Medication name is required.")

    @field_validator("dosage", mode="before")
    @classmethod
    def _dosage(cls, v):
        return _required(v, "Dosage is required.")

    @field_validator("frequency", mode="before")
    @classmethod
    def _frequency(cls, v):
        return _required(v, "Frequency is required.")

    @field_validator("duration", mode="before")
    @classmethod
    def _duration(cls, v):
        return ("" if v is None else str(v).strip()) or "Ongoing"


class ClinicalNoteForm(Form):
    specialty: str = ""
    content: str = ""

    @field_validator("specialty", mode="before")
    @classmethod
    def _specialty(cls, v):
        return _required(v, "Specialty is required.")

    @field_validator("content", mode="before")
    @classmethod
    def _content(cls, v):
        return _required(v, "Note content cannot be empty.")


class ReminderForm(Form):
    title: str = ""
    due_date: dt.date | None = Field(default_factory=dt.date.today)

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, v):
        text = _required(v, "Reminder title is required.")
        if len(text) > REMINDER_TITLE_MAX_LENGTH:
            raise ValueError(
                f"Title should not exceed {REMINDER_TITLE_MAX_LENGTH} characters."
            )
        return text

    @field_validator("due_date")
    @classmethod
    def _due_date(cls, v):
        if v is None:
            raise ValueError("Due date is required.")
        if v < dt.date.today():
            raise ValueError("Due date cannot be in the past.")
        return v


class TimelineEventForm(Form):
    date: dt.date | None = Field(default_factory=dt.date.today)
    event_type: TimelineEventType
    title: str = ""
    details: str | None = None

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, v):
        return _required(v, "Event title is required.")

    @field_validator("date")
    @classmethod
    def _date(cls, v):
        if v is None:
            raise ValueError("Date is required.")
        return _not_future(v, "Date cannot be in the future.")


FORMS: dict[str, type[Form]] = {
    "patient": PatientForm,
    "alert": AlertForm,
    "vitals": VitalsForm,
    "lab": LabResultForm,
    "medication": MedicationForm,
    "note": ClinicalNoteForm,
    "reminder": ReminderForm,
    "timeline": TimelineEventForm,
}
