"""
Tests for the patient data models.
"""

from datetime import date, timedelta


class TestVitalsReading:
    """Blood pressure parsing and abnormal flag."""

    def _reading(self, bp):
        from kemr.models import VitalsReading
        return VitalsReading(
            blood_pressure=bp,
            heart_rate=80,
            temperature=36.9,
            respiratory_rate=16,
            oxygen_saturation=98,
        )

    def test_parses_systolic_and_diastolic(self):
        reading = self._reading("145/92")
        assert reading.systolic == 145
        assert reading.diastolic == 92

    def test_abnormal_above_140(self):
        assert self._reading("141/80").is_bp_abnormal is True

    def test_140_is_not_abnormal(self):
        assert self._reading("140/90").is_bp_abnormal is False

    def test_unparseable_bp(self):
        reading = self._reading("high")
        assert reading.systolic is None
        assert reading.is_bp_abnormal is False

    def test_gets_id_and_timestamp(self):
        reading = self._reading("120/80")
        assert len(reading.id) == 8
        assert reading.date.tzinfo is not None


class TestReminder:

    def test_overdue_only_when_pending(self):
        from kemr.models import Reminder, ReminderStatus

        past = date.today() - timedelta(days=1)
        assert Reminder(title="Refill", due_date=past).is_overdue() is True
        done = Reminder(title="Refill", due_date=past, status=ReminderStatus.COMPLETED)
        assert done.is_overdue() is False

    def test_due_today_is_not_overdue(self):
        from kemr.models import Reminder
        assert Reminder(title="Call back", due_date=date.today()).is_overdue() is False


class TestPatient:
    """Derived values and display ordering on the patient record."""

    def test_age_before_and_after_birthday(self):
        from kemr.models import Gender, Patient

        today = date.today()
        patient = Patient(
            id="MRN1", name="A", date_of_birth=date(today.year - 30, 1, 1),
            gender=Gender.MALE, national_id="1", nhif_number="N",
        )
        assert patient.age_years == 30

        if (today.month, today.day) != (12, 31):
            patient.date_of_birth = date(today.year - 30, 12, 31)
            assert patient.age_years == 29

    def test_latest_vitals(self):
        from kemr.store import demo_patients

        amina = demo_patients()[0]
        assert amina.latest_vitals.id == "vit1"

    def test_latest_vitals_none(self):
        from kemr.store import demo_patients

        patient = demo_patients()[1]
        patient.vitals = []
        assert patient.latest_vitals is None

    def test_sorted_reminders_pending_first(self):
        from kemr.store import demo_patients

        amina = demo_patients()[0]
        ordered = [r.id for r in amina.sorted_reminders()]
        assert ordered == ["rem2", "rem1", "rem3"]

    def test_sorted_timeline_newest_first(self):
        from kemr.store import demo_patients

        amina = demo_patients()[0]
        dates = [e.date for e in amina.sorted_timeline()]
        assert dates == sorted(dates, reverse=True)

    def test_has_alert_case_insensitive(self):
        from kemr.store import demo_patients

        amina = demo_patients()[0]
        assert amina.has_alert("  penicillin allergy ")
        assert not amina.has_alert("Asthma")

    def test_clinical_context_drops_avatar(self):
        from kemr.store import demo_patients

        context = demo_patients()[0].clinical_context()
        assert "avatar_url" not in context
        assert context["name"] == "Amina Wanjala"
        assert context["vitals"][0]["is_bp_abnormal"] is True

    def test_json_round_trip(self):
        from kemr.models import Patient
        from kemr.store import demo_patients

        amina = demo_patients()[0]
        restored = Patient.model_validate(amina.model_dump(mode="json"))
        assert restored == amina


class TestGenerateMrn:

    def test_format(self):
        from kemr.models import generate_mrn

        mrn = generate_mrn()
        assert mrn.startswith("MRN")
        assert len(mrn) == 10
        assert mrn[3:].isdigit()

    def test_avoids_collisions(self):
        from kemr.models import generate_mrn

        first = generate_mrn()
        second = generate_mrn([first])
        assert second != first
