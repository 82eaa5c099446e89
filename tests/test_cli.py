"""
CLI tests using click's CliRunner.
"""

from datetime import date, timedelta
from pathlib import Path

import pytest
from click.testing import CliRunner


AMINA = "MRN0012345"


@pytest.fixture
def runner():
    return CliRunner()


def _invoke(runner, *args, **kwargs):
    from cli import cli
    return runner.invoke(cli, list(args), **kwargs)


class TestBrowsing:

    def test_list(self, runner):
        result = _invoke(runner, "list")
        assert result.exit_code == 0
        assert "MRN0012345" in result.output
        assert "MRN0012346" in result.output

    def test_list_search(self, runner):
        result = _invoke(runner, "list", "--search", "otieno")
        assert "MRN0012346" in result.output
        assert "MRN0012345" not in result.output

    def test_list_no_match(self, runner):
        result = _invoke(runner, "list", "-s", "zzz")
        assert "No patients found" in result.output

    def test_show(self, runner):
        result = _invoke(runner, "show", AMINA)
        assert result.exit_code == 0
        assert "Amina Wanjala" in result.output
        assert "Latest Vitals" in result.output

    def test_show_unknown(self, runner):
        result = _invoke(runner, "show", "MRN404")
        assert result.exit_code == 1
        assert "Patient not found: MRN404" in result.output

    def test_info(self, runner):
        result = _invoke(runner, "info")
        assert result.exit_code == 0
        assert "KEMR Clinical Dashboard" in result.output


class TestEditing:

    def test_add_patient(self, runner, store):
        result = _invoke(
            runner, "add-patient",
            "--name", "Baraka Mutua", "--dob", "1979-02-11", "--gender", "Male",
            "--national-id", "30111222", "--nhif", "NHIF-444",
        )
        assert result.exit_code == 0, result.output
        assert "Registered Baraka Mutua" in result.output
        assert store.load_patients()[-1].name == "Baraka Mutua"

    def test_add_patient_future_dob(self, runner):
        future = (date.today() + timedelta(days=10)).isoformat()
        result = _invoke(
            runner, "add-patient",
            "--name", "X", "--dob", future, "--national-id", "1", "--nhif", "N",
        )
        assert result.exit_code == 1
        assert "Date of birth cannot be in the future." in result.output

    def test_add_alert(self, runner, store):
        result = _invoke(runner, "add-alert", AMINA, "Sulfa Allergy")
        assert result.exit_code == 0
        assert store.load_patients()[0].alerts[-1] == "Sulfa Allergy"

    def test_add_empty_alert(self, runner):
        result = _invoke(runner, "add-alert", AMINA, " ")
        assert result.exit_code == 1
        assert "Alert cannot be empty." in result.output

    def test_add_medication_conflict(self, runner, store):
        args = ["add-medication", AMINA, "--name", "Amoxicillin", "--dosage", "500mg", "--frequency", "TDS"]
        result = _invoke(runner, *args)
        assert result.exit_code == 2
        assert "--force" in result.output

        result = _invoke(runner, *args, "--force")
        assert result.exit_code == 0
        assert store.load_patients()[0].medications[-1].name == "Amoxicillin"

    def test_reminders(self, runner, store):
        due = (date.today() + timedelta(days=5)).isoformat()
        result = _invoke(runner, "add-reminder", AMINA, "Eye exam", "--due", due)
        assert result.exit_code == 0
        reminder = store.load_patients()[0].reminders[-1]
        assert reminder.title == "Eye exam"

        result = _invoke(runner, "complete-reminder", AMINA, reminder.id)
        assert result.exit_code == 0
        assert store.load_patients()[0].reminders[-1].status.value == "completed"

    def test_conflicts(self, runner):
        result = _invoke(runner, "conflicts")
        assert "No conflicts found" in result.output

    def test_reset(self, runner, store):
        _invoke(runner, "add-alert", AMINA, "Sulfa Allergy")
        result = _invoke(runner, "reset", "--yes")
        assert result.exit_code == 0
        assert "Restored 2 demo patients" in result.output
        assert "Sulfa Allergy" not in store.load_patients()[0].alerts


class TestExport:

    def test_patient_csv(self, runner, tmp_path):
        out = tmp_path / "amina.csv"
        result = _invoke(runner, "export", AMINA, "--only", "labs", "-o", str(out))
        assert result.exit_code == 0
        assert out.read_text().startswith("# Lab Results\n")

    def test_all_patients_pdf(self, runner, tmp_path):
        out = tmp_path / "all.pdf"
        result = _invoke(runner, "export", "--format", "pdf", "-o", str(out))
        assert result.exit_code == 0
        assert out.read_bytes().startswith(b"%PDF")

    def test_all_patients_json_not_supported(self, runner):
        result = _invoke(runner, "export", "--format", "json")
        assert result.exit_code == 1

    def test_default_file_name(self, runner):
        with runner.isolated_filesystem() as cwd:
            result = _invoke(runner, "export", AMINA, "--format", "markdown")
            assert result.exit_code == 0
            assert (Path(cwd) / f"{AMINA}_{date.today().isoformat()}.md").exists()

    def test_bad_option(self, runner, tmp_path):
        result = _invoke(runner, "export", "--only", "vitals", "-o", str(tmp_path / "x.csv"))
        assert result.exit_code == 1
        assert "Unknown export option" in result.output


class TestSummarize:

    def test_summary(self, runner, fake_llm):
        result = _invoke(runner, "summarize", AMINA)
        assert result.exit_code == 0, result.output
        assert "Key Concerns" in result.output
        assert "Titrate lisinopril" in result.output

    def test_summary_without_key(self, runner):
        result = _invoke(runner, "summarize", AMINA)
        assert result.exit_code == 1
        assert "ANTHROPIC_API_KEY not set" in result.output
