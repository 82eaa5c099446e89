"""
KEMR Dashboard Web Server

FastAPI-based web server for the Kenya EMR clinical dashboard.
"""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

# Setup paths
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from kemr import __version__
from kemr.auth import Clinician, get_current_clinician
from kemr.config import configure_logging, get_settings
from kemr.dashboard import ClinicalDashboard
from kemr.drafts import DraftAutosaver
from kemr.errors import (
    AllergyConflictError,
    FormValidationError,
    PatientNotFound,
    RecordNotFound,
    StorageError,
    SummaryError,
)
from kemr.exporters import (
    export_all_csv,
    export_all_pdf,
    export_filename,
    export_json,
    export_json_summary,
    export_markdown,
    export_patient_csv,
    export_patient_pdf,
)
from kemr.llm import LOADING_MESSAGES, generate_clinical_summary
from kemr.models import (
    FORMS,
    AlertForm,
    ClinicalNoteForm,
    LabResultForm,
    MedicationForm,
    PatientForm,
    ReminderForm,
    TimelineEventForm,
    VitalsForm,
)
from kemr.rules import vitals_flags
from kemr.store import create_store


logger = logging.getLogger(__name__)

MEDIA_TYPES = {
    "csv": "text/csv",
    "pdf": "application/pdf",
    "json": "application/json",
    "markdown": "text/markdown",
}
EXTENSIONS = {"csv": "csv", "pdf": "pdf", "json": "json", "markdown": "md"}


# Dashboard singleton
_dashboard: Optional[ClinicalDashboard] = None


def get_dashboard() -> ClinicalDashboard:
    """Get the shared dashboard, creating it from settings on first use."""
    global _dashboard
    if _dashboard is None:
        settings = get_settings()
        store = create_store(settings)
        _dashboard = ClinicalDashboard(
            store, autosaver=DraftAutosaver(store, delay=settings.draft_delay)
        )
    return _dashboard


def set_dashboard(dashboard: Optional[ClinicalDashboard]) -> None:
    """Replace the shared dashboard (None drops it)."""
    global _dashboard
    _dashboard = dashboard


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if _dashboard is not None:
        _dashboard.close()


# Create FastAPI app
app = FastAPI(
    title="KEMR Dashboard",
    description="Kenya EMR Clinical Dashboard API",
    version=__version__,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ERROR HANDLING
# =============================================================================


def _request_errors(exc: RequestValidationError) -> dict[str, str]:
    """Flatten FastAPI's validation errors to {field: message}."""
    errors: dict[str, str] = {}
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ())]
        if loc and loc[0] in ("body", "query", "path"):
            loc = loc[1:]
        field = ".".join(loc) or "body"
        if field in errors:
            continue
        ctx_error = (err.get("ctx") or {}).get("error")
        errors[field] = str(ctx_error) if ctx_error is not None else err.get("msg", "Invalid value")
    return errors


@app.exception_handler(FormValidationError)
async def form_error_handler(request: Request, exc: FormValidationError):
    return JSONResponse(
        status_code=422,
        content={"detail": "Please correct the highlighted fields.", "errors": exc.errors},
    )


@app.exception_handler(RequestValidationError)
async def request_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"detail": "Please correct the highlighted fields.", "errors": _request_errors(exc)},
    )


@app.exception_handler(PatientNotFound)
@app.exception_handler(RecordNotFound)
async def not_found_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(AllergyConflictError)
async def conflict_handler(request: Request, exc: AllergyConflictError):
    return JSONResponse(
        status_code=409,
        content={
            "detail": str(exc),
            "conflicts": [c.to_dict() for c in exc.conflicts],
        },
    )


@app.exception_handler(SummaryError)
async def summary_error_handler(request: Request, exc: SummaryError):
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage failure: %s", exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# =============================================================================
# ROUTES
# =============================================================================


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


@app.get("/api/patients")
async def list_patients(
    search: Optional[str] = Query(None, description="Name, MRN or national ID"),
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    """List patients, optionally filtered."""
    patients = dashboard.list_patients(search)
    return {
        "total": len(patients),
        "patients": [export_json_summary(p) for p in patients],
    }


@app.post("/api/patients", status_code=201)
async def create_patient(
    form: PatientForm,
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    """Register a new patient."""
    patient = dashboard.add_patient(form)
    return patient.model_dump(mode="json")


@app.get("/api/patients/{patient_id}")
async def get_patient(
    patient_id: str,
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    """
    Get a full patient record.

    Lists come back in display order: vitals and labs newest first,
    reminders pending first, timeline newest first.
    """
    patient = dashboard.get_patient(patient_id)
    data = patient.model_dump(mode="json")
    data["vitals"] = [v.model_dump(mode="json") for v in patient.sorted_vitals()]
    data["labs"] = [lab.model_dump(mode="json") for lab in patient.sorted_labs()]
    data["reminders"] = [
        {**r.model_dump(mode="json"), "overdue": r.is_overdue()}
        for r in patient.sorted_reminders()
    ]
    data["timeline"] = [e.model_dump(mode="json") for e in patient.sorted_timeline()]
    latest = patient.latest_vitals
    data["vitals_flags"] = vitals_flags(latest) if latest else {}
    data["allergy_conflicts"] = [c.to_dict() for c in dashboard.allergy_conflicts(patient_id)]
    return data


@app.delete("/api/patients/{patient_id}")
async def delete_patient(
    patient_id: str,
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    """Delete a patient."""
    dashboard.delete_patient(patient_id)
    return {"status": "deleted", "patient_id": patient_id}


# Alerts

@app.post("/api/patients/{patient_id}/alerts", status_code=201)
async def add_alert(
    patient_id: str,
    form: AlertForm,
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    return {"alerts": dashboard.add_alert(patient_id, form)}


@app.delete("/api/patients/{patient_id}/alerts")
async def remove_alert(
    patient_id: str,
    text: str = Query(..., description="Exact alert text"),
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    return {"alerts": dashboard.remove_alert(patient_id, text)}


# Vitals

@app.post("/api/patients/{patient_id}/vitals", status_code=201)
async def add_vitals(
    patient_id: str,
    form: VitalsForm,
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    reading = dashboard.add_vitals(patient_id, form)
    return {**reading.model_dump(mode="json"), "flags": vitals_flags(reading)}


# Labs

@app.post("/api/patients/{patient_id}/labs", status_code=201)
async def add_lab_result(
    patient_id: str,
    form: LabResultForm,
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    return dashboard.add_lab_result(patient_id, form).model_dump(mode="json")


@app.delete("/api/patients/{patient_id}/labs/{lab_id}")
async def remove_lab_result(
    patient_id: str,
    lab_id: str,
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    dashboard.remove_lab_result(patient_id, lab_id)
    return {"status": "deleted", "id": lab_id}


# Medications

@app.post("/api/patients/{patient_id}/medications", status_code=201)
async def add_medication(
    patient_id: str,
    form: MedicationForm,
    acknowledge_conflicts: bool = Query(False),
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    """
    Add a medication.

    Returns 409 with the conflicting allergies unless the caller passes
    acknowledge_conflicts=true.
    """
    medication, conflicts = dashboard.add_medication(
        patient_id, form, acknowledge_conflicts=acknowledge_conflicts
    )
    return {
        **medication.model_dump(mode="json"),
        "conflicts": [c.to_dict() for c in conflicts],
    }


@app.delete("/api/patients/{patient_id}/medications/{medication_id}")
async def remove_medication(
    patient_id: str,
    medication_id: str,
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    dashboard.remove_medication(patient_id, medication_id)
    return {"status": "deleted", "id": medication_id}


@app.get("/api/patients/{patient_id}/allergy-conflicts")
async def allergy_conflicts(
    patient_id: str,
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    return {"conflicts": [c.to_dict() for c in dashboard.allergy_conflicts(patient_id)]}


# Notes

@app.post("/api/patients/{patient_id}/notes", status_code=201)
async def add_note(
    patient_id: str,
    form: ClinicalNoteForm,
    clinician: Clinician = Depends(get_current_clinician),
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    """Add a clinical note authored by the requesting clinician."""
    return dashboard.add_note(patient_id, form, author=clinician).model_dump(mode="json")


@app.delete("/api/patients/{patient_id}/notes/{note_id}")
async def remove_note(
    patient_id: str,
    note_id: str,
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    dashboard.remove_note(patient_id, note_id)
    return {"status": "deleted", "id": note_id}


# Reminders

@app.post("/api/patients/{patient_id}/reminders", status_code=201)
async def add_reminder(
    patient_id: str,
    form: ReminderForm,
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    return dashboard.add_reminder(patient_id, form).model_dump(mode="json")


@app.post("/api/patients/{patient_id}/reminders/{reminder_id}/toggle")
async def toggle_reminder(
    patient_id: str,
    reminder_id: str,
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    return dashboard.toggle_reminder(patient_id, reminder_id).model_dump(mode="json")


@app.delete("/api/patients/{patient_id}/reminders/{reminder_id}")
async def remove_reminder(
    patient_id: str,
    reminder_id: str,
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    dashboard.remove_reminder(patient_id, reminder_id)
    return {"status": "deleted", "id": reminder_id}


# Timeline

@app.get("/api/patients/{patient_id}/timeline")
async def get_timeline(
    patient_id: str,
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    """Timeline events, newest first."""
    patient = dashboard.get_patient(patient_id)
    return {
        "patient_id": patient_id,
        "events": [e.model_dump(mode="json") for e in patient.sorted_timeline()],
    }


@app.post("/api/patients/{patient_id}/timeline", status_code=201)
async def add_timeline_event(
    patient_id: str,
    form: TimelineEventForm,
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    return dashboard.add_timeline_event(patient_id, form).model_dump(mode="json")


@app.delete("/api/patients/{patient_id}/timeline/{event_id}")
async def remove_timeline_event(
    patient_id: str,
    event_id: str,
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    dashboard.remove_timeline_event(patient_id, event_id)
    return {"status": "deleted", "id": event_id}


# Drafts

def _check_form(form: str) -> None:
    if form not in FORMS:
        raise FormValidationError({"form": f"Unknown form: {form}"})


@app.get("/api/patients/{patient_id}/drafts/{form}")
async def get_draft(
    patient_id: str,
    form: str,
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    """Saved draft for a form. Use patient id "new" for the registration form."""
    _check_form(form)
    return {"form": form, "data": dashboard.get_draft(patient_id, form)}


@app.put("/api/patients/{patient_id}/drafts/{form}")
async def save_draft(
    patient_id: str,
    form: str,
    data: dict[str, Any],
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    """Autosave a partially filled form. Writes are debounced."""
    _check_form(form)
    dashboard.save_draft(patient_id, form, data)
    return {"status": "saved", "form": form}


@app.delete("/api/patients/{patient_id}/drafts/{form}")
async def discard_draft(
    patient_id: str,
    form: str,
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    _check_form(form)
    dashboard.discard_draft(patient_id, form)
    return {"status": "deleted", "form": form}


# AI summary

@app.get("/api/summary/messages")
async def summary_messages():
    """Progress messages to rotate while a summary is generated."""
    return {"messages": LOADING_MESSAGES}


@app.post("/api/patients/{patient_id}/summary")
async def generate_summary(
    patient_id: str,
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    """Generate an AI clinical summary. Returns 502 when the model fails."""
    patient = dashboard.get_patient(patient_id)
    summary = generate_clinical_summary(patient)
    return summary.model_dump(mode="json")


# Export

def _parse_options(options: Optional[str]) -> Optional[list[str]]:
    if options is None:
        return None
    return [o for o in options.split(",") if o.strip()]


def _download(content: str | bytes, filename: str, fmt: str) -> Response:
    return Response(
        content=content,
        media_type=MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/api/export")
async def export_all(
    format: str = Query("csv", pattern="^(csv|pdf)$"),
    options: Optional[str] = Query(None, description="Comma-separated sections"),
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    """
    Export every patient.

    Sections: demographics, alerts (default both).
    """
    patients = dashboard.list_patients()
    sections = _parse_options(options)
    if format == "csv":
        content = export_all_csv(patients, sections)
    else:
        content = export_all_pdf(patients, sections) if patients else ""
    if not content:
        return JSONResponse(status_code=404, content={"detail": "Export aborted: No data to export."})
    return _download(content, export_filename(None, EXTENSIONS[format]), format)


@app.get("/api/patients/{patient_id}/export")
async def export_patient(
    patient_id: str,
    format: str = Query("csv", pattern="^(csv|pdf|json|markdown)$"),
    options: Optional[str] = Query(None, description="Comma-separated sections"),
    dashboard: ClinicalDashboard = Depends(get_dashboard),
):
    """
    Export one patient.

    Sections for csv/pdf: demographics, alerts, vitals, labs, medications,
    notes (default all). json and markdown always contain the full record.
    """
    patient = dashboard.get_patient(patient_id)
    sections = _parse_options(options)
    if format == "csv":
        content = export_patient_csv(patient, sections)
    elif format == "pdf":
        content = export_patient_pdf(patient, sections)
    elif format == "json":
        content = export_json(patient)
    else:
        content = export_markdown(patient)
    return _download(content, export_filename(patient, EXTENSIONS[format]), format)


# Demo data

@app.post("/api/demo/reset")
async def reset_demo(dashboard: ClinicalDashboard = Depends(get_dashboard)):
    """Discard all changes and restore the demo patients."""
    patients = dashboard.reset_demo_data()
    return {"status": "reset", "patients": [export_json_summary(p) for p in patients]}


def run_server(host: str = "0.0.0.0", port: int = 8000):
    """Run the server."""
    import uvicorn
    configure_logging()
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
