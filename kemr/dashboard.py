"""
Clinical dashboard service.

Owns the in-memory patient list and writes the whole list through to the
store after every change. All create operations accept either a form model
or a plain dict of form fields.
"""

from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Any, Callable, TypeVar

from pydantic import BaseModel, ValidationError

from kemr.auth import Clinician, default_clinician
from kemr.drafts import DraftAutosaver
from kemr.errors import (
    AllergyConflictError,
    FormValidationError,
    PatientNotFound,
    RecordNotFound,
)
from kemr.models import (
    FORMS,
    AlertForm,
    ClinicalNote,
    ClinicalNoteForm,
    LabResult,
    LabResultForm,
    Medication,
    MedicationForm,
    Patient,
    PatientForm,
    Reminder,
    ReminderForm,
    ReminderStatus,
    TimelineEvent,
    TimelineEventForm,
    TimelineEventType,
    VitalsForm,
    VitalsReading,
    form_errors,
    generate_mrn,
)
from kemr.rules import AllergyConflict, check_medication, check_patient
from kemr.store import PatientStore, draft_key


logger = logging.getLogger(__name__)

F = TypeVar("F", bound=BaseModel)

AVATAR_URL = "https://picsum.photos/seed/{seed}/200/200"


def parse_form(form_cls: type[F], data: F | dict[str, Any]) -> F:
    """Validate raw form input, raising FormValidationError on failure."""
    if isinstance(data, form_cls):
        return data
    try:
        return form_cls.model_validate(data)
    except ValidationError as e:
        raise FormValidationError(form_errors(e)) from e


class ClinicalDashboard:
    """Patient list plus every data-entry operation the dashboard offers."""

    def __init__(
        self,
        store: PatientStore,
        autosaver: DraftAutosaver | None = None,
        clinician: Clinician | None = None,
    ):
        self.store = store
        self.drafts = autosaver or DraftAutosaver(store)
        self.clinician = clinician or default_clinician()
        self._lock = threading.RLock()
        self._patients: list[Patient] = store.load_patients()
        logger.info("Loaded %d patient(s)", len(self._patients))

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _commit(self, patients: list[Patient]) -> None:
        """Persist a new patient list, then make it current."""
        self.store.save_patients(patients)
        self._patients = patients

    def _index(self, patient_id: str) -> int:
        for i, patient in enumerate(self._patients):
            if patient.id == patient_id:
                return i
        raise PatientNotFound(patient_id)

    def _find(self, patient_id: str) -> Patient:
        return self._patients[self._index(patient_id)]

    def _mutate(self, patient_id: str, change: Callable[[Patient], Any], form: str | None = None) -> Any:
        """
        Apply `change` to a copy of the patient and persist it.

        The in-memory list is only replaced once the store write succeeds, so
        a failed save leaves the dashboard as it was. On success the form's
        draft is cleared.
        """
        with self._lock:
            index = self._index(patient_id)
            updated = self._patients[index].model_copy(deep=True)
            result = change(updated)
            patients = list(self._patients)
            patients[index] = updated
            self._commit(patients)
        if form:
            self.drafts.discard(draft_key(patient_id, form))
        return result

    @staticmethod
    def _remove_by_id(items: list, item_id: str, kind: str):
        for i, item in enumerate(items):
            if item.id == item_id:
                return items.pop(i)
        raise RecordNotFound(kind, item_id)

    # -------------------------------------------------------------------------
    # Patients
    # -------------------------------------------------------------------------

    def list_patients(self, query: str | None = None) -> list[Patient]:
        """All patients, optionally filtered by name, MRN or national ID."""
        with self._lock:
            patients = list(self._patients)
        if not query:
            return patients
        needle = query.strip().lower()
        return [
            p for p in patients
            if needle in p.name.lower()
            or needle in p.id.lower()
            or needle in p.national_id.lower()
        ]

    def get_patient(self, patient_id: str) -> Patient:
        with self._lock:
            return self._find(patient_id)

    def add_patient(self, data: PatientForm | dict[str, Any]) -> Patient:
        form = parse_form(PatientForm, data)
        with self._lock:
            mrn = generate_mrn(p.id for p in self._patients)
            patient = Patient(
                id=mrn,
                name=form.name,
                date_of_birth=form.date_of_birth,
                gender=form.gender,
                national_id=form.national_id,
                nhif_number=form.nhif_number,
                avatar_url=AVATAR_URL.format(seed=mrn),
            )
            self._commit([*self._patients, patient])
        self.drafts.discard(draft_key("new", "patient"))
        logger.info("Registered patient %s", patient.id)
        return patient

    def delete_patient(self, patient_id: str) -> Patient:
        """Remove a patient along with any drafts left on their forms."""
        with self._lock:
            index = self._index(patient_id)
            patient = self._patients[index]
            self._commit(self._patients[:index] + self._patients[index + 1:])
        for form in FORMS:
            self.drafts.discard(draft_key(patient_id, form))
        logger.info("Deleted patient %s", patient_id)
        return patient

    def reset_demo_data(self) -> list[Patient]:
        """Discard all changes, including unsaved drafts, and restore the demo patients."""
        with self._lock:
            cancelled = self.drafts.cancel_all()
            if cancelled:
                logger.info("Dropped %d pending draft(s) before reset", cancelled)
            self._patients = self.store.reset()
            return list(self._patients)

    # -------------------------------------------------------------------------
    # Alerts
    # -------------------------------------------------------------------------

    def add_alert(self, patient_id: str, data: AlertForm | dict[str, Any] | str) -> list[str]:
        if isinstance(data, str):
            data = {"text": data}
        form = parse_form(AlertForm, data)

        def change(patient: Patient) -> list[str]:
            if patient.has_alert(form.text):
                raise FormValidationError({"text": "Alert already exists."})
            patient.alerts.append(form.text)
            return list(patient.alerts)

        return self._mutate(patient_id, change, form="alert")

    def remove_alert(self, patient_id: str, text: str) -> list[str]:
        def change(patient: Patient) -> list[str]:
            if text not in patient.alerts:
                raise RecordNotFound("Alert", text)
            patient.alerts.remove(text)
            return list(patient.alerts)

        return self._mutate(patient_id, change)

    # -------------------------------------------------------------------------
    # Vitals
    # -------------------------------------------------------------------------

    def add_vitals(self, patient_id: str, data: VitalsForm | dict[str, Any]) -> VitalsReading:
        form = parse_form(VitalsForm, data)
        reading = VitalsReading(**form.model_dump())

        def change(patient: Patient) -> VitalsReading:
            patient.vitals.append(reading)
            return reading

        return self._mutate(patient_id, change, form="vitals")

    # -------------------------------------------------------------------------
    # Labs
    # -------------------------------------------------------------------------

    def add_lab_result(self, patient_id: str, data: LabResultForm | dict[str, Any]) -> LabResult:
        form = parse_form(LabResultForm, data)
        lab = LabResult(**form.model_dump())

        def change(patient: Patient) -> LabResult:
            patient.labs.append(lab)
            patient.timeline.append(TimelineEvent(
                date=lab.date,
                event_type=TimelineEventType.LAB,
                title=f"{lab.test_name} {lab.result}",
                details=f"{lab.status.value} (ref {lab.reference_range})",
            ))
            return lab

        return self._mutate(patient_id, change, form="lab")

    def remove_lab_result(self, patient_id: str, lab_id: str) -> LabResult:
        return self._mutate(
            patient_id, lambda p: self._remove_by_id(p.labs, lab_id, "Lab result")
        )

    # -------------------------------------------------------------------------
    # Medications
    # -------------------------------------------------------------------------

    def add_medication(
        self,
        patient_id: str,
        data: MedicationForm | dict[str, Any],
        acknowledge_conflicts: bool = False,
    ) -> tuple[Medication, list[AllergyConflict]]:
        """
        Add a medication after checking it against allergy alerts.

        Raises AllergyConflictError when a conflict is found and the caller
        has not acknowledged it. Acknowledged conflicts are returned.
        """
        form = parse_form(MedicationForm, data)
        medication = Medication(**form.model_dump())

        def change(patient: Patient):
            conflicts = check_medication(patient.alerts, medication)
            if conflicts and not acknowledge_conflicts:
                raise AllergyConflictError(conflicts)
            if conflicts:
                logger.warning(
                    "Medication %s added to %s despite allergy conflict",
                    medication.name, patient.id,
                )
            patient.medications.append(medication)
            patient.timeline.append(TimelineEvent(
                date=date.today(),
                event_type=TimelineEventType.MEDICATION,
                title=f"Started {medication.name} {medication.dosage}",
                details=medication.frequency,
            ))
            return medication, conflicts

        return self._mutate(patient_id, change, form="medication")

    def remove_medication(self, patient_id: str, medication_id: str) -> Medication:
        return self._mutate(
            patient_id,
            lambda p: self._remove_by_id(p.medications, medication_id, "Medication"),
        )

    def allergy_conflicts(self, patient_id: str) -> list[AllergyConflict]:
        return check_patient(self.get_patient(patient_id))

    # -------------------------------------------------------------------------
    # Notes
    # -------------------------------------------------------------------------

    def add_note(
        self,
        patient_id: str,
        data: ClinicalNoteForm | dict[str, Any],
        author: Clinician | None = None,
    ) -> ClinicalNote:
        form = parse_form(ClinicalNoteForm, data)
        note = ClinicalNote(
            date=date.today(),
            author=(author or self.clinician).name,
            specialty=form.specialty,
            content=form.content,
        )

        def change(patient: Patient) -> ClinicalNote:
            patient.notes.insert(0, note)
            return note

        return self._mutate(patient_id, change, form="note")

    def remove_note(self, patient_id: str, note_id: str) -> ClinicalNote:
        return self._mutate(
            patient_id, lambda p: self._remove_by_id(p.notes, note_id, "Clinical note")
        )

    # -------------------------------------------------------------------------
    # Reminders
    # -------------------------------------------------------------------------

    def add_reminder(self, patient_id: str, data: ReminderForm | dict[str, Any]) -> Reminder:
        form = parse_form(ReminderForm, data)
        reminder = Reminder(title=form.title, due_date=form.due_date)

        def change(patient: Patient) -> Reminder:
            patient.reminders.append(reminder)
            return reminder

        return self._mutate(patient_id, change, form="reminder")

    def toggle_reminder(self, patient_id: str, reminder_id: str) -> Reminder:
        def change(patient: Patient) -> Reminder:
            for reminder in patient.reminders:
                if reminder.id == reminder_id:
                    reminder.status = (
                        ReminderStatus.PENDING if reminder.is_completed
                        else ReminderStatus.COMPLETED
                    )
                    return reminder
            raise RecordNotFound("Reminder", reminder_id)

        return self._mutate(patient_id, change)

    def remove_reminder(self, patient_id: str, reminder_id: str) -> Reminder:
        return self._mutate(
            patient_id, lambda p: self._remove_by_id(p.reminders, reminder_id, "Reminder")
        )

    # -------------------------------------------------------------------------
    # Timeline
    # -------------------------------------------------------------------------

    def add_timeline_event(
        self, patient_id: str, data: TimelineEventForm | dict[str, Any]
    ) -> TimelineEvent:
        form = parse_form(TimelineEventForm, data)
        event = TimelineEvent(**form.model_dump())

        def change(patient: Patient) -> TimelineEvent:
            patient.timeline.append(event)
            return event

        return self._mutate(patient_id, change, form="timeline")

    def remove_timeline_event(self, patient_id: str, event_id: str) -> TimelineEvent:
        return self._mutate(
            patient_id, lambda p: self._remove_by_id(p.timeline, event_id, "Timeline event")
        )

    # -------------------------------------------------------------------------
    # Drafts
    # -------------------------------------------------------------------------

    def save_draft(self, patient_id: str, form: str, data: dict[str, Any]) -> None:
        if patient_id != "new":
            self.get_patient(patient_id)
        self.drafts.update(draft_key(patient_id, form), data)

    def get_draft(self, patient_id: str, form: str) -> dict[str, Any] | None:
        return self.drafts.get(draft_key(patient_id, form))

    def discard_draft(self, patient_id: str, form: str) -> None:
        self.drafts.discard(draft_key(patient_id, form))

    def close(self) -> None:
        self.drafts.close()
