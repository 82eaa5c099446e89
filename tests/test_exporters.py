"""
Tests for CSV, PDF, JSON and Markdown export.
"""

import json
import logging
from datetime import date

import pytest


@pytest.fixture
def patients():
    from kemr.store import demo_patients
    return demo_patients()


@pytest.fixture
def amina(patients):
    return patients[0]


class TestRowsToCsv:

    def test_escaping(self):
        from kemr.exporters import rows_to_csv

        text = rows_to_csv([{
            "quote": 'He said "hi"',
            "comma": "x,y",
            "none": None,
            "newline": "line1\nline2",
            "plain": 7,
        }])
        assert text == (
            "quote,comma,none,newline,plain\n"
            '"He said ""hi""","x,y",,"line1\nline2",7'
        )

    def test_no_rows(self):
        from kemr.exporters import rows_to_csv
        assert rows_to_csv([]) == ""

    def test_header_from_first_row(self):
        from kemr.exporters import rows_to_csv

        text = rows_to_csv([{"a": 1, "b": 2}, {"a": 3, "b": 4, "c": 5}])
        assert text.splitlines() == ["a,b", "1,2", "3,4"]


class TestResolveOptions:

    def test_defaults_to_everything(self):
        from kemr.exporters import resolve_options

        assert resolve_options(None, single_patient=False) == ["demographics", "alerts"]
        assert len(resolve_options(None, single_patient=True)) == 6

    def test_checkbox_dict_keeps_canonical_order(self):
        from kemr.exporters import resolve_options

        chosen = resolve_options({"notes": True, "demographics": True, "labs": False}, True)
        assert chosen == ["demographics", "notes"]

    def test_patient_sections_not_allowed_for_all(self):
        from kemr.errors import FormValidationError
        from kemr.exporters import resolve_options

        with pytest.raises(FormValidationError) as exc_info:
            resolve_options(["vitals"], single_patient=False)
        assert "vitals" in exc_info.value.errors["options"]

    def test_empty_selection(self):
        from kemr.errors import FormValidationError
        from kemr.exporters import resolve_options

        with pytest.raises(FormValidationError) as exc_info:
            resolve_options({"demographics": False, "alerts": False}, single_patient=False)
        assert exc_info.value.errors == {"options": "Select at least one section to export."}


class TestCsvExport:

    def test_all_patients(self, patients):
        from kemr.exporters import export_all_csv

        lines = export_all_csv(patients).splitlines()
        assert lines[0] == "MRN,Name,Date of Birth,Age,Gender,National ID,NHIF Number,Alerts"
        assert lines[1].startswith("MRN0012345,Amina Wanjala,1985-05-15,")
        assert lines[1].endswith(",Female,12345678,NHIF-987654,Penicillin Allergy; Hypertension")
        assert len(lines) == 3

    def test_all_patients_alerts_only(self, patients):
        from kemr.exporters import export_all_csv

        lines = export_all_csv(patients, ["alerts"]).splitlines()
        assert lines == [
            "MRN,Alerts",
            "MRN0012345,Penicillin Allergy; Hypertension",
            "MRN0012346,Asthma",
        ]

    def test_no_patients(self, caplog):
        from kemr.exporters import export_all_csv

        with caplog.at_level(logging.WARNING):
            assert export_all_csv([]) == ""
        assert "Export aborted: No data to export." in caplog.text

    def test_single_patient_sections(self, amina):
        from kemr.exporters import export_patient_csv

        text = export_patient_csv(amina)
        blocks = text.rstrip("\n").split("\n\n")
        assert [b.splitlines()[0] for b in blocks] == [
            "# Patient Demographics",
            "# Active Alerts",
            "# Vitals History",
            "# Lab Results",
            "# Medications",
            "# Clinical Notes",
        ]
        assert blocks[1] == "# Active Alerts\nAlert\nPenicillin Allergy\nHypertension"
        assert blocks[2].splitlines()[1] == (
            "Date,Blood Pressure,Heart Rate,Temperature,Respiratory Rate,Oxygen Saturation"
        )
        assert blocks[2].splitlines()[2].startswith("2024-08-20 09:00,145/92,")

    def test_single_patient_selected_sections(self, amina):
        from kemr.exporters import export_patient_csv

        text = export_patient_csv(amina, ["medications"])
        assert text == (
            "# Medications\n"
            "Name,Dosage,Frequency,Duration\n"
            "Metformin,500mg,Twice daily,Ongoing\n"
            "Lisinopril,10mg,Once daily,Ongoing\n"
        )

    def test_empty_section_keeps_heading(self, amina):
        from kemr.exporters import export_patient_csv

        amina.labs = []
        assert export_patient_csv(amina, ["labs"]) == "# Lab Results\n"

    def test_writes_file(self, amina, tmp_path):
        from kemr.exporters import export_patient_csv

        out = tmp_path / "exports" / "amina.csv"
        text = export_patient_csv(amina, output_path=out)
        assert out.read_text(encoding="utf-8") == text


class TestPdfExport:

    def test_single_patient(self, amina, tmp_path):
        from kemr.exporters import export_patient_pdf

        out = tmp_path / "amina.pdf"
        pdf = export_patient_pdf(amina, output_path=out)
        assert pdf.startswith(b"%PDF")
        assert out.read_bytes() == pdf

    def test_all_patients(self, patients):
        from kemr.exporters import export_all_pdf
        assert export_all_pdf(patients, ["demographics"]).startswith(b"%PDF")

    def test_escapes_markup_in_text(self, amina):
        from kemr.exporters import export_patient_pdf

        amina.notes[0].content = "BP <140/90> & rising"
        assert export_patient_pdf(amina, ["notes"]).startswith(b"%PDF")

    def test_rejects_unknown_option(self, amina):
        from kemr.errors import FormValidationError
        from kemr.exporters import export_patient_pdf

        with pytest.raises(FormValidationError):
            export_patient_pdf(amina, ["billing"])


class TestFilenames:

    def test_patient_and_all(self, amina):
        from kemr.exporters import export_filename

        day = date(2024, 8, 20)
        assert export_filename(amina, "csv", today=day) == "MRN0012345_2024-08-20.csv"
        assert export_filename(None, "pdf", today=day) == "all_patients_2024-08-20.pdf"


class TestJsonExport:

    def test_full_record(self, amina):
        from kemr.exporters import export_json

        data = json.loads(export_json(amina))
        assert data["id"] == "MRN0012345"
        assert len(data["labs"]) == 3
        assert "details" not in data["timeline"][0]

    def test_summary(self, amina):
        from kemr.exporters import export_json_summary

        summary = export_json_summary(amina)
        assert summary["name"] == "Amina Wanjala"
        assert summary["medication_count"] == 2
        assert summary["pending_reminders"] == 2
        assert summary["latest_bp"] == "145/92"


class TestMarkdownExport:

    def test_sections(self, amina):
        from kemr.exporters import export_markdown

        md = export_markdown(amina, today=date(2024, 9, 20))
        assert md.startswith("# Patient Record: Amina Wanjala")
        assert "## Latest Vitals" in md
        assert "Systolic above 140 mmHg" in md
        assert "- [ ] Follow-up appointment (due 2024-09-15) **(overdue)**" in md
        assert "- [x] Check fasting blood sugar (due 2024-08-22)" in md

    def test_conflicts_listed(self, amina):
        from kemr.exporters import export_markdown
        from kemr.models import Medication

        amina.medications.append(Medication(name="Amoxicillin", dosage="500mg", frequency="TDS"))
        assert "**Allergy conflict:** Amoxicillin vs Penicillin Allergy" in export_markdown(amina)
