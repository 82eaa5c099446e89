"""
Markdown exporter.

Exports a patient record as human-readable Markdown, suitable for pasting
into a referral letter or handover note.
"""

from __future__ import annotations

from datetime import date, datetime
from pathlib import Path

from kemr.models import Patient
from kemr.rules import check_patient, vitals_flags


def export_markdown(
    patient: Patient,
    output_path: Path | None = None,
    today: date | None = None,
) -> str:
    """
    Export a patient to Markdown format.

    Args:
        patient: The patient to export
        output_path: Optional path to write the Markdown file
        today: Reference date for overdue reminders

    Returns:
        Markdown string representation of the patient
    """
    today = today or date.today()
    lines = []

    # Header
    lines.append(f"# Patient Record: {patient.name}")
    lines.append("")
    lines.append(f"**Generated:** {datetime.now().strftime('%Y-%m-%d %H:%M')}")
    lines.append(f"**MRN:** {patient.id}")
    lines.append("")

    # Demographics
    lines.append("## Demographics")
    lines.append("")
    lines.append(f"- **Name:** {patient.name}")
    lines.append(f"- **Date of Birth:** {patient.date_of_birth.strftime('%B %d, %Y')}")
    lines.append(f"- **Age:** {patient.age_years} years")
    lines.append(f"- **Gender:** {patient.gender.value}")
    lines.append(f"- **National ID:** {patient.national_id}")
    lines.append(f"- **NHIF Number:** {patient.nhif_number}")
    lines.append("")

    # Alerts
    lines.append("## Alerts")
    lines.append("")
    if patient.alerts:
        for alert in patient.alerts:
            lines.append(f"- ⚠️ {alert}")
    else:
        lines.append("*No active alerts*")
    for conflict in check_patient(patient):
        lines.append(
            f"- **Allergy conflict:** {conflict.medication} vs {conflict.alert}"
        )
    lines.append("")

    # Latest vitals
    latest = patient.latest_vitals
    if latest:
        flags = vitals_flags(latest)
        lines.append("## Latest Vitals")
        lines.append("")
        lines.append(f"*Recorded {latest.date.strftime('%Y-%m-%d %H:%M')}*")
        lines.append("")
        lines.append("| Measurement | Value | Flag |")
        lines.append("|-------------|-------|------|")
        lines.append(f"| Blood Pressure | {latest.blood_pressure} mmHg | {flags.get('blood_pressure', '')} |")
        lines.append(f"| Heart Rate | {latest.heart_rate} bpm | {flags.get('heart_rate', '')} |")
        lines.append(f"| Temperature | {latest.temperature} °C | {flags.get('temperature', '')} |")
        lines.append(f"| Respiratory Rate | {latest.respiratory_rate} /min | {flags.get('respiratory_rate', '')} |")
        lines.append(f"| SpO2 | {latest.oxygen_saturation}% | {flags.get('oxygen_saturation', '')} |")
        lines.append("")

    # Medications
    lines.append("## Medications")
    lines.append("")
    if patient.medications:
        for med in patient.medications:
            lines.append(f"- **{med.name}** {med.dosage}, {med.frequency} ({med.duration})")
    else:
        lines.append("*No current medications*")
    lines.append("")

    # Labs
    if patient.labs:
        lines.append("## Lab Results")
        lines.append("")
        lines.append("| Date | Test | Result | Reference | Status |")
        lines.append("|------|------|--------|-----------|--------|")
        for lab in patient.sorted_labs():
            lines.append(
                f"| {lab.date.isoformat()} | {lab.test_name} | {lab.result} "
                f"| {lab.reference_range} | {lab.status.value} |"
            )
        lines.append("")

    # Reminders
    if patient.reminders:
        lines.append("## Reminders")
        lines.append("")
        for reminder in patient.sorted_reminders():
            box = "x" if reminder.is_completed else " "
            overdue = " **(overdue)**" if reminder.is_overdue(today) else ""
            lines.append(f"- [{box}] {reminder.title} (due {reminder.due_date.isoformat()}){overdue}")
        lines.append("")

    # Timeline
    if patient.timeline:
        lines.append("## Timeline")
        lines.append("")
        for event in patient.sorted_timeline():
            lines.append(f"- **{event.date.isoformat()}** {event.event_type.value}: {event.title}")
            if event.details:
                lines.append(f"  - {event.details}")
        lines.append("")

    # Notes
    if patient.notes:
        lines.append("## Clinical Notes")
        lines.append("")
        for note in sorted(patient.notes, key=lambda n: n.date, reverse=True):
            lines.append(f"### {note.date.strftime('%B %d, %Y')} - {note.specialty}")
            lines.append("")
            lines.append(f"*{note.author}*")
            lines.append("")
            lines.append(note.content)
            lines.append("")

    markdown = "\n".join(lines)

    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(markdown, encoding="utf-8")

    return markdown
