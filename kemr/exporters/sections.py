"""
Export sections and the rows each one produces.

Every exporter works from the same tabular view of a patient: an ordered set
of sections, each a list of flat dicts.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from kemr.errors import FormValidationError
from kemr.models import Patient


ALL_PATIENTS_SECTIONS: dict[str, str] = {
    "demographics": "Patient Demographics",
    "alerts": "Active Alerts",
}

PATIENT_SECTIONS: dict[str, str] = {
    **ALL_PATIENTS_SECTIONS,
    "vitals": "Vitals History",
    "labs": "Lab Results",
    "medications": "Medications",
    "notes": "Clinical Notes",
}


def resolve_options(
    options: Iterable[str] | dict[str, bool] | None,
    single_patient: bool,
) -> list[str]:
    """
    Normalise the caller's section choice to an ordered list of keys.

    None means every section (all are checked by default). A dict is
    treated as checkbox state. Unknown keys and an empty selection are
    rejected.
    """
    available = PATIENT_SECTIONS if single_patient else ALL_PATIENTS_SECTIONS
    if options is None:
        return list(available)
    if isinstance(options, dict):
        chosen = {k for k, v in options.items() if v}
    else:
        chosen = {o.strip().lower() for o in options if o and o.strip()}
    unknown = chosen - set(available)
    if unknown:
        raise FormValidationError({
            "options": f"Unknown export option(s): {', '.join(sorted(unknown))}"
        })
    if not chosen:
        raise FormValidationError({"options": "Select at least one section to export."})
    return [key for key in available if key in chosen]


def demographics_row(patient: Patient) -> dict:
    return {
        "MRN": patient.id,
        "Name": patient.name,
        "Date of Birth": patient.date_of_birth.isoformat(),
        "Age": patient.age_years,
        "Gender": patient.gender.value,
        "National ID": patient.national_id,
        "NHIF Number": patient.nhif_number,
    }


def section_rows(patient: Patient, section: str) -> list[dict]:
    """Rows for one section of one patient."""
    if section == "demographics":
        return [demographics_row(patient)]
    if section == "alerts":
        return [{"Alert": a} for a in patient.alerts]
    if section == "vitals":
        return [
            {
                "Date": v.date.strftime("%Y-%m-%d %H:%M"),
                "Blood Pressure": v.blood_pressure,
                "Heart Rate": v.heart_rate,
                "Temperature": v.temperature,
                "Respiratory Rate": v.respiratory_rate,
                "Oxygen Saturation": v.oxygen_saturation,
            }
            for v in patient.sorted_vitals()
        ]
    if section == "labs":
        return [
            {
                "Date": lab.date.isoformat(),
                "Test": lab.test_name,
                "Result": lab.result,
                "Reference Range": lab.reference_range,
                "Status": lab.status.value,
            }
            for lab in patient.sorted_labs()
        ]
    if section == "medications":
        return [
            {
                "Name": m.name,
                "Dosage": m.dosage,
                "Frequency": m.frequency,
                "Duration": m.duration,
            }
            for m in patient.medications
        ]
    if section == "notes":
        return [
            {
                "Date": n.date.isoformat(),
                "Author": n.author,
                "Specialty": n.specialty,
                "Note": n.content,
            }
            for n in sorted(patient.notes, key=lambda n: n.date, reverse=True)
        ]
    raise ValueError(f"Unknown section: {section}")


def all_patients_rows(patients: list[Patient], sections: list[str]) -> list[dict]:
    """One row per patient for the all-patients export."""
    rows = []
    for patient in patients:
        row: dict = {"MRN": patient.id}
        if "demographics" in sections:
            row.update(demographics_row(patient))
        if "alerts" in sections:
            row["Alerts"] = "; ".join(patient.alerts)
        rows.append(row)
    return rows


def export_filename(patient: Patient | None, extension: str, today: date | None = None) -> str:
    stamp = (today or date.today()).isoformat()
    stem = patient.id if patient else "all_patients"
    return f"{stem}_{stamp}.{extension}"
