"""
Rule-based clinical checks.
"""

from kemr.rules.allergies import (
    AllergyConflict,
    allergens_for,
    check_medication,
    check_patient,
    parse_allergens,
)
from kemr.rules.vitals import vitals_flags

__all__ = [
    "AllergyConflict",
    "allergens_for",
    "check_medication",
    "check_patient",
    "parse_allergens",
    "vitals_flags",
]
