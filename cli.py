#!/usr/bin/env python3
"""
KEMR Dashboard CLI

Command-line interface for the Kenya EMR clinical dashboard.
"""

import sys
from concurrent.futures import ThreadPoolExecutor, TimeoutError
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.tree import Tree

console = Console()


def setup_paths():
    """Add the project root to sys.path for imports."""
    root = Path(__file__).parent
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


setup_paths()

from kemr import __version__
from kemr.config import configure_logging, get_settings
from kemr.errors import AllergyConflictError, DashboardError, FormValidationError
from kemr.models import Gender

LOADING_INTERVAL = 2.5


def _dashboard():
    """Open the dashboard on the configured store. Drafts write immediately."""
    from kemr.dashboard import ClinicalDashboard
    from kemr.drafts import DraftAutosaver
    from kemr.store import create_store

    store = create_store()
    return ClinicalDashboard(store, autosaver=DraftAutosaver(store, delay=0))


def _fail(error: Exception):
    """Print a dashboard error and exit non-zero."""
    if isinstance(error, FormValidationError):
        console.print("[red]✗ Please correct the following:[/red]")
        for field, message in error.errors.items():
            console.print(f"  [red]• {field}:[/red] {message}")
    else:
        console.print(f"[red]✗ {error}[/red]")
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="kemr")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def cli(verbose: bool):
    """
    KEMR - Kenya EMR Clinical Dashboard

    Manage patient records, alerts, reminders and exports from the
    terminal, or start the web API with `kemr serve`.
    """
    configure_logging("DEBUG" if verbose else None, rich_output=True)


@cli.command("list")
@click.option("--search", "-s", type=str, help="Filter by name, MRN or national ID")
def list_patients(search: Optional[str]):
    """
    List patients.
    """
    patients = _dashboard().list_patients(search)
    if not patients:
        console.print("[yellow]No patients found[/yellow]")
        return

    table = Table(title="Patients")
    table.add_column("MRN", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Age")
    table.add_column("Gender")
    table.add_column("Alerts", style="red")

    for patient in patients:
        table.add_row(
            patient.id,
            patient.name,
            str(patient.age_years),
            patient.gender.value,
            ", ".join(patient.alerts),
        )

    console.print(table)


@cli.command()
@click.argument("mrn")
def show(mrn: str):
    """
    Show a patient's record.

    Example:

        kemr show MRN0012345
    """
    from kemr.rules import vitals_flags

    dashboard = _dashboard()
    try:
        patient = dashboard.get_patient(mrn)
    except DashboardError as e:
        _fail(e)

    console.print()
    console.print(Panel(
        f"[bold]{patient.name}[/bold]\n"
        f"MRN: {patient.id}\n"
        f"DOB: {patient.date_of_birth} ({patient.age_years} years)\n"
        f"Gender: {patient.gender.value}\n"
        f"National ID: {patient.national_id}\n"
        f"NHIF: {patient.nhif_number}",
        title="Demographics",
        border_style="blue",
    ))

    if patient.alerts:
        tree = Tree("[bold red]Alerts[/bold red]")
        for alert in patient.alerts:
            tree.add(f"[red]{alert}[/red]")
        for conflict in dashboard.allergy_conflicts(mrn):
            tree.add(f"[bold red]Conflict:[/bold red] {conflict.medication} vs {conflict.alert}")
        console.print(tree)
    else:
        console.print("[dim]No active alerts[/dim]")

    latest = patient.latest_vitals
    if latest:
        flags = vitals_flags(latest)
        table = Table(title=f"Latest Vitals ({latest.date.strftime('%Y-%m-%d %H:%M')})")
        table.add_column("Measurement")
        table.add_column("Value")
        table.add_column("Flag", style="red")
        table.add_row("Blood Pressure", f"{latest.blood_pressure} mmHg", flags.get("blood_pressure", ""))
        table.add_row("Heart Rate", f"{latest.heart_rate} bpm", flags.get("heart_rate", ""))
        table.add_row("Temperature", f"{latest.temperature} °C", flags.get("temperature", ""))
        table.add_row("Respiratory Rate", f"{latest.respiratory_rate} /min", flags.get("respiratory_rate", ""))
        table.add_row("SpO2", f"{latest.oxygen_saturation}%", flags.get("oxygen_saturation", ""))
        console.print(table)

    if patient.medications:
        tree = Tree("[bold]Medications[/bold]")
        for med in patient.medications:
            tree.add(f"{med.name} {med.dosage} {med.frequency} [dim]({med.duration})[/dim]")
        console.print(tree)

    if patient.reminders:
        table = Table(title="Reminders")
        table.add_column("ID", style="dim")
        table.add_column("Title")
        table.add_column("Due")
        table.add_column("Status")
        for reminder in patient.sorted_reminders():
            if reminder.is_completed:
                status = "[green]completed[/green]"
            elif reminder.is_overdue():
                status = "[red]overdue[/red]"
            else:
                status = "pending"
            table.add_row(reminder.id, reminder.title, reminder.due_date.isoformat(), status)
        console.print(table)

    if patient.labs:
        table = Table(title="Recent Labs")
        table.add_column("Date")
        table.add_column("Test")
        table.add_column("Result")
        table.add_column("Status")
        for lab in patient.sorted_labs()[:5]:
            color = "green" if lab.status.value == "Normal" else "red"
            table.add_row(
                lab.date.isoformat(),
                lab.test_name,
                lab.result,
                f"[{color}]{lab.status.value}[/{color}]",
            )
        console.print(table)

    console.print(f"\n[bold]Notes:[/bold] {len(patient.notes)}  "
                  f"[bold]Timeline events:[/bold] {len(patient.timeline)}")


@cli.command("add-patient")
@click.option("--name", prompt=True, help="Full name")
@click.option("--dob", prompt="Date of birth (YYYY-MM-DD)", type=click.DateTime(formats=["%Y-%m-%d"]),
              help="Date of birth")
@click.option("--gender", type=click.Choice([g.value for g in Gender]), default=Gender.FEMALE.value,
              show_default=True)
@click.option("--national-id", prompt="National ID", help="National ID number")
@click.option("--nhif", prompt="NHIF number", help="NHIF number")
def add_patient(name: str, dob: datetime, gender: str, national_id: str, nhif: str):
    """
    Register a new patient.
    """
    try:
        patient = _dashboard().add_patient({
            "name": name,
            "date_of_birth": dob.date(),
            "gender": gender,
            "national_id": national_id,
            "nhif_number": nhif,
        })
    except DashboardError as e:
        _fail(e)
    console.print(f"[green]✓ Registered {patient.name} as {patient.id}[/green]")


@cli.command("add-alert")
@click.argument("mrn")
@click.argument("text")
def add_alert(mrn: str, text: str):
    """
    Add an alert to a patient.

    Example:

        kemr add-alert MRN0012345 "Sulfa Allergy"
    """
    try:
        alerts = _dashboard().add_alert(mrn, text)
    except DashboardError as e:
        _fail(e)
    console.print(f"[green]✓ Alerts: {', '.join(alerts)}[/green]")


@cli.command("add-medication")
@click.argument("mrn")
@click.option("--name", required=True, help="Medication name")
@click.option("--dosage", required=True, help="Dose, e.g. 500mg")
@click.option("--frequency", required=True, help="e.g. Twice daily")
@click.option("--duration", default="Ongoing", show_default=True)
@click.option("--force", is_flag=True, help="Add even if it conflicts with an allergy")
def add_medication(mrn: str, name: str, dosage: str, frequency: str, duration: str, force: bool):
    """
    Add a medication, checking it against allergy alerts.
    """
    data = {"name": name, "dosage": dosage, "frequency": frequency, "duration": duration}
    try:
        medication, conflicts = _dashboard().add_medication(mrn, data, acknowledge_conflicts=force)
    except AllergyConflictError as e:
        console.print(f"[red]✗ {e}[/red]")
        console.print("[dim]Re-run with --force to add it anyway.[/dim]")
        sys.exit(2)
    except DashboardError as e:
        _fail(e)
    for conflict in conflicts:
        console.print(f"[yellow]⚠ Added despite {conflict.alert}[/yellow]")
    console.print(f"[green]✓ Added {medication.name} {medication.dosage}[/green]")


@cli.command("add-reminder")
@click.argument("mrn")
@click.argument("title")
@click.option("--due", type=click.DateTime(formats=["%Y-%m-%d"]), help="Due date (default today)")
def add_reminder(mrn: str, title: str, due: Optional[datetime]):
    """
    Add a follow-up reminder.
    """
    data = {"title": title}
    if due:
        data["due_date"] = due.date()
    try:
        reminder = _dashboard().add_reminder(mrn, data)
    except DashboardError as e:
        _fail(e)
    console.print(f"[green]✓ Reminder {reminder.id} due {reminder.due_date}[/green]")


@cli.command("complete-reminder")
@click.argument("mrn")
@click.argument("reminder_id")
def complete_reminder(mrn: str, reminder_id: str):
    """
    Toggle a reminder between pending and completed.
    """
    try:
        reminder = _dashboard().toggle_reminder(mrn, reminder_id)
    except DashboardError as e:
        _fail(e)
    console.print(f"[green]✓ {reminder.title}: {reminder.status.value}[/green]")


@cli.command()
@click.argument("mrn", required=False)
def conflicts(mrn: Optional[str]):
    """
    Show medication / allergy conflicts for one or all patients.
    """
    dashboard = _dashboard()
    try:
        patients = [dashboard.get_patient(mrn)] if mrn else dashboard.list_patients()
    except DashboardError as e:
        _fail(e)

    table = Table(title="Allergy Conflicts")
    table.add_column("MRN", style="cyan")
    table.add_column("Medication")
    table.add_column("Alert", style="red")
    table.add_column("Allergen")

    found = 0
    for patient in patients:
        for conflict in dashboard.allergy_conflicts(patient.id):
            table.add_row(patient.id, conflict.medication, conflict.alert, conflict.allergen)
            found += 1

    if not found:
        console.print("[green]✓ No conflicts found[/green]")
        return
    console.print(table)


@cli.command()
@click.argument("mrn", required=False)
@click.option("--format", "fmt", type=click.Choice(["csv", "pdf", "json", "markdown"]), default="csv",
              show_default=True, help="Format to export to")
@click.option("--only", "sections", multiple=True,
              help="Section to include (repeatable): demographics, alerts, vitals, labs, medications, notes")
@click.option("--output", "-o", type=click.Path(), help="Output file path")
def export(mrn: Optional[str], fmt: str, sections: tuple, output: Optional[str]):
    """
    Export one patient, or all patients when no MRN is given.

    Example:

        kemr export MRN0012345 --format pdf --only vitals --only labs
    """
    from kemr.exporters import (
        export_all_csv,
        export_all_pdf,
        export_filename,
        export_json,
        export_markdown,
        export_patient_csv,
        export_patient_pdf,
    )

    dashboard = _dashboard()
    options = list(sections) or None
    ext = "md" if fmt == "markdown" else fmt

    try:
        patient = dashboard.get_patient(mrn) if mrn else None
        out_path = Path(output) if output else Path.cwd() / export_filename(patient, ext)

        if patient is None:
            if fmt not in ("csv", "pdf"):
                console.print("[red]✗ All-patient export supports csv and pdf only[/red]")
                sys.exit(1)
            patients = dashboard.list_patients()
            if not patients:
                console.print("[yellow]Export aborted: No data to export.[/yellow]")
                sys.exit(1)
            if fmt == "csv":
                export_all_csv(patients, options, out_path)
            else:
                export_all_pdf(patients, options, out_path)
        elif fmt == "csv":
            export_patient_csv(patient, options, out_path)
        elif fmt == "pdf":
            export_patient_pdf(patient, options, out_path)
        elif fmt == "json":
            export_json(patient, out_path)
        else:
            export_markdown(patient, out_path)
    except DashboardError as e:
        _fail(e)

    console.print(f"[green]✓ Exported to {out_path}[/green]")


@cli.command()
@click.argument("mrn")
def summarize(mrn: str):
    """
    Generate an AI clinical summary (needs ANTHROPIC_API_KEY).
    """
    from kemr.llm import LOADING_MESSAGES, generate_clinical_summary

    try:
        patient = _dashboard().get_patient(mrn)
    except DashboardError as e:
        _fail(e)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(LOADING_MESSAGES[0], total=None)
        with ThreadPoolExecutor(max_workers=1) as pool:
            future = pool.submit(generate_clinical_summary, patient)
            tick = 0
            while True:
                try:
                    result = future.result(timeout=LOADING_INTERVAL)
                    break
                except TimeoutError:
                    tick += 1
                    progress.update(task, description=LOADING_MESSAGES[tick % len(LOADING_MESSAGES)])
                except DashboardError as e:
                    progress.stop()
                    _fail(e)

    console.print(Panel(result.summary, title=f"AI Summary: {patient.name}", border_style="magenta"))

    if result.key_concerns:
        tree = Tree("[bold red]Key Concerns[/bold red]")
        for concern in result.key_concerns:
            tree.add(concern)
        console.print(tree)

    if result.suggested_actions:
        tree = Tree("[bold green]Suggested Actions[/bold green]")
        for action in result.suggested_actions:
            tree.add(action)
        console.print(tree)


@cli.command()
@click.confirmation_option(prompt="Discard all changes and restore the demo patients?")
def reset():
    """
    Reset to the demo patients.
    """
    patients = _dashboard().reset_demo_data()
    console.print(f"[green]✓ Restored {len(patients)} demo patients[/green]")


@cli.command()
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
def serve(host: str, port: int):
    """
    Start the web API.
    """
    from server import run_server

    console.print(f"[bold]Serving KEMR dashboard on http://{host}:{port}[/bold] [dim](docs at /docs)[/dim]")
    run_server(host=host, port=port)


@cli.command()
def info():
    """
    Show configuration and information about the dashboard.
    """
    from kemr.db import is_configured as supabase_configured

    settings = get_settings()
    console.print(Panel(
        "[bold]KEMR Clinical Dashboard[/bold]\n\n"
        "Patient records for Kenyan clinics:\n"
        "• Vitals, labs, medications and clinical notes\n"
        "• Alerts with allergy / medication cross-checks\n"
        "• Follow-up reminders and a clinical timeline\n\n"
        "[dim]CSV and PDF export, AI-generated clinical summaries.[/dim]",
        title="About",
        border_style="blue",
    ))

    table = Table(title="Configuration", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Version", __version__)
    table.add_row("Store", settings.store_backend)
    table.add_row("Supabase", "configured" if supabase_configured() else "[dim]not configured[/dim]")
    table.add_row("State file", str(settings.state_path))
    table.add_row("Clinician", settings.clinician_name)
    table.add_row("LLM model", settings.llm_model)
    table.add_row("AI summary", "enabled" if settings.anthropic_api_key else "[yellow]no API key[/yellow]")
    console.print(table)

    console.print("\n[bold]Quick Start:[/bold]")
    console.print("  kemr list")
    console.print("  kemr show MRN0012345")
    console.print("  kemr export MRN0012345 --format pdf")
    console.print("  kemr serve --port 8000")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
