"""
Exceptions raised by the dashboard core.

The HTTP layer maps these to status codes; the CLI prints them.
"""


class DashboardError(Exception):
    """Base class for dashboard errors."""


class PatientNotFound(DashboardError):
    """No patient with the given MRN."""

    def __init__(self, patient_id: str):
        super().__init__(f"Patient not found: {patient_id}")
        self.patient_id = patient_id


class RecordNotFound(DashboardError):
    """No lab, medication, note, reminder or event with the given id."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class FormValidationError(DashboardError):
    """A submitted form failed validation. `errors` maps field -> message."""

    def __init__(self, errors: dict[str, str]):
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = errors


class AllergyConflictError(DashboardError):
    """A new medication matches one of the patient's allergy alerts."""

    def __init__(self, conflicts: list):
        names = ", ".join(f"{c.medication} ({c.allergen})" for c in conflicts)
        super().__init__(f"Medication conflicts with recorded allergy: {names}")
        self.conflicts = conflicts


class StorageError(DashboardError):
    """Persisted state could not be read or written."""


class SummaryError(DashboardError):
    """The AI summary could not be produced."""
