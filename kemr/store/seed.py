"""
Demo patients loaded when no saved state exists.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from kemr.models import (
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
)


def _at(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def demo_patients() -> list[Patient]:
    """Build a fresh copy of the demo patient list."""
    amina = Patient(
        id="MRN0012345",
        name="Amina Wanjala",
        date_of_birth=date(1985, 5, 15),
        gender=Gender.FEMALE,
        national_id="12345678",
        nhif_number="NHIF-987654",
        avatar_url="https://picsum.photos/seed/patient1/200/200",
        alerts=["Penicillin Allergy", "Hypertension"],
        vitals=[
            VitalsReading(
                id="vit1",
                date=_at(2024, 8, 20, 9, 0),
                blood_pressure="145/92",
                heart_rate=88,
                temperature=37.1,
                respiratory_rate=18,
                oxygen_saturation=97,
            ),
            VitalsReading(
                id="vit2",
                date=_at(2024, 8, 19, 14, 30),
                blood_pressure="142/90",
                heart_rate=85,
                temperature=37.0,
                respiratory_rate=18,
                oxygen_saturation=98,
            ),
        ],
        labs=[
            LabResult(id="lab1", test_name="Hemoglobin A1c", result="7.8%",
                      reference_range="4.0-5.6%", date=date(2024, 8, 15), status=LabStatus.ABNORMAL),
            LabResult(id="lab2", test_name="Creatinine", result="1.2 mg/dL",
                      reference_range="0.6-1.1 mg/dL", date=date(2024, 8, 15), status=LabStatus.ABNORMAL),
            LabResult(id="lab3", test_name="Potassium", result="4.1 mEq/L",
                      reference_range="3.5-5.0 mEq/L", date=date(2024, 8, 15), status=LabStatus.NORMAL),
        ],
        medications=[
            Medication(id="med1", name="Metformin", dosage="500mg", frequency="Twice daily"),
            Medication(id="med2", name="Lisinopril", dosage="10mg", frequency="Once daily"),
        ],
        notes=[
            ClinicalNote(
                id="note1",
                date=date(2024, 8, 15),
                author="Dr. John Carter",
                specialty="Cardiology",
                content=(
                    "Patient presents for routine follow-up for hypertension and "
                    "type 2 diabetes. BP remains elevated..."
                ),
            ),
            ClinicalNote(
                id="note2",
                date=date(2024, 5, 10),
                author="Dr. Susan Lewis",
                specialty="Endocrinology",
                content="Reviewed A1c results. Discussed importance of diet and medication adherence.",
            ),
        ],
        reminders=[
            Reminder(id="rem1", title="Follow-up appointment", due_date=date(2024, 9, 15)),
            Reminder(id="rem2", title="Medication refill (Lisinopril)", due_date=date(2024, 8, 30)),
            Reminder(id="rem3", title="Check fasting blood sugar", due_date=date(2024, 8, 22),
                     status=ReminderStatus.COMPLETED),
        ],
        timeline=[
            TimelineEvent(id="evt1", date=date(2019, 3, 2), event_type=TimelineEventType.DIAGNOSIS,
                          title="Type 2 diabetes mellitus diagnosed"),
            TimelineEvent(id="evt2", date=date(2021, 6, 11), event_type=TimelineEventType.DIAGNOSIS,
                          title="Essential hypertension diagnosed"),
            TimelineEvent(id="evt3", date=date(2023, 1, 20), event_type=TimelineEventType.ADMISSION,
                          title="Admitted with hyperglycaemia", details="Kenyatta National Hospital"),
            TimelineEvent(id="evt4", date=date(2023, 1, 24), event_type=TimelineEventType.DISCHARGE,
                          title="Discharged home on metformin"),
            TimelineEvent(id="evt5", date=date(2024, 8, 15), event_type=TimelineEventType.LAB,
                          title="Hemoglobin A1c 7.8%"),
        ],
        created_at=_at(2024, 1, 1),
    )

    david = Patient(
        id="MRN0012346",
        name="David Otieno",
        date_of_birth=date(1972, 11, 30),
        gender=Gender.MALE,
        national_id="87654321",
        nhif_number="NHIF-123456",
        avatar_url="https://picsum.photos/seed/patient2/200/200",
        alerts=["Asthma"],
        vitals=[
            VitalsReading(
                id="vit3",
                date=_at(2024, 7, 1, 10, 15),
                blood_pressure="120/80",
                heart_rate=75,
                temperature=36.8,
                respiratory_rate=16,
                oxygen_saturation=99,
            ),
        ],
        labs=[
            LabResult(id="lab4", test_name="Total Cholesterol", result="190 mg/dL",
                      reference_range="<200 mg/dL", date=date(2024, 7, 1)),
            LabResult(id="lab5", test_name="TSH", result="2.5 mIU/L",
                      reference_range="0.4-4.0 mIU/L", date=date(2024, 7, 1)),
        ],
        medications=[
            Medication(id="med3", name="Salbutamol Inhaler", dosage="As needed",
                       frequency="For wheezing", duration="As needed"),
        ],
        notes=[
            ClinicalNote(
                id="note3",
                date=date(2024, 7, 1),
                author="Dr. Peter Benton",
                specialty="General Practice",
                content="Annual physical. Patient reports good control of asthma. Lungs clear to auscultation.",
            ),
        ],
        reminders=[
            Reminder(id="rem4", title="Annual physical due", due_date=date(2025, 7, 1)),
        ],
        timeline=[
            TimelineEvent(id="evt6", date=date(1990, 4, 5), event_type=TimelineEventType.DIAGNOSIS,
                          title="Asthma diagnosed"),
            TimelineEvent(id="evt7", date=date(2015, 9, 14), event_type=TimelineEventType.SURGERY,
                          title="Laparoscopic appendectomy"),
        ],
        created_at=_at(2024, 1, 2),
    )

    return [amina, david]
