"""
Allergy / medication cross-check.

Allergies are recorded as free-text patient alerts ("Penicillin Allergy",
"Allergic to aspirin", "Allergy: Sulfa"). Each alert that names an allergy is
reduced to one or more allergen tokens, each expanded to its drug class and
compared with medication names by case-insensitive substring match.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from kemr.models import Medication, Patient


# Allergen token -> names that share the allergy.
DRUG_CLASSES: dict[str, tuple[str, ...]] = {
    "penicillin": (
        "penicillin", "amoxicillin", "ampicillin", "augmentin", "co-amoxiclav",
        "flucloxacillin", "cloxacillin", "piperacillin", "benzathine",
        "phenoxymethylpenicillin",
    ),
    "cephalosporin": (
        "cef", "ceph", "ceftriaxone", "cefuroxime", "cefalexin", "cephalexin",
        "cefixime", "cefazolin",
    ),
    "sulfa": (
        "sulfa", "sulpha", "sulfamethoxazole", "cotrimoxazole", "co-trimoxazole",
        "septrin", "bactrim", "sulfadoxine", "sulfasalazine",
    ),
    "nsaid": (
        "ibuprofen", "diclofenac", "naproxen", "aspirin", "indomethacin",
        "meloxicam", "piroxicam", "ketorolac", "celecoxib",
    ),
    "aspirin": ("aspirin", "acetylsalicylic"),
    "macrolide": ("erythromycin", "azithromycin", "clarithromycin"),
    "opioid": (
        "morphine", "codeine", "tramadol", "pethidine", "fentanyl",
        "oxycodone", "hydromorphone",
    ),
    "quinolone": ("ciprofloxacin", "levofloxacin", "moxifloxacin", "ofloxacin"),
    "tetracycline": ("tetracycline", "doxycycline", "minocycline"),
    "ace inhibitor": ("pril", "lisinopril", "enalapril", "captopril", "ramipril"),
}

ALIASES: dict[str, str] = {
    "penicillins": "penicillin",
    "pcn": "penicillin",
    "cephalosporins": "cephalosporin",
    "sulfonamide": "sulfa",
    "sulfonamides": "sulfa",
    "sulpha": "sulfa",
    "sulfa drugs": "sulfa",
    "nsaids": "nsaid",
    "macrolides": "macrolide",
    "opioids": "opioid",
    "opiates": "opioid",
    "quinolones": "quinolone",
    "fluoroquinolones": "quinolone",
    "tetracyclines": "tetracycline",
    "ace inhibitors": "ace inhibitor",
    "acei": "ace inhibitor",
}

_NO_KNOWN_ALLERGIES = re.compile(r"^(?:nka|nkda|no known (?:drug )?allergies)$", re.IGNORECASE)

_ALLERGY_PATTERNS = (
    re.compile(r"^allerg(?:y|ies|ic)\s*(?:to|:|-)\s*(?P<allergens>.+)$", re.IGNORECASE),
    re.compile(r"^(?P<allergens>.+?)\s+allerg(?:y|ies)$", re.IGNORECASE),
)

# Severity and certainty words that are not part of the allergen name.
_QUALIFIERS = re.compile(
    r"\b(?:severe|mild|moderate|known|suspected|possible|documented|confirmed|history of)\b",
    re.IGNORECASE,
)
_SEPARATORS = re.compile(r"\s*(?:,|;|/|&|\band\b|\bor\b)\s*", re.IGNORECASE)


@dataclass(frozen=True)
class AllergyConflict:
    """A medication that matches a recorded allergy."""
    allergen: str
    alert: str
    medication: str
    matched: str

    def to_dict(self) -> dict[str, str]:
        return {
            "allergen": self.allergen,
            "alert": self.alert,
            "medication": self.medication,
            "matched": self.matched,
        }


def parse_allergens(alert: str) -> list[str]:
    """
    Extract every allergen named in an alert. Non-allergy alerts give [].

    >>> parse_allergens("Severe Penicillin Allergy")
    ['penicillin']
    >>> parse_allergens("Allergies: PCN, sulfa")
    ['penicillin', 'sulfa']
    >>> parse_allergens("Hypertension")
    []
    """
    text = alert.strip().rstrip(".")
    if _NO_KNOWN_ALLERGIES.match(text):
        return []
    text = re.sub(r"\([^)]*\)", " ", text)
    text = " ".join(_QUALIFIERS.sub(" ", text).split())

    for pattern in _ALLERGY_PATTERNS:
        match = pattern.match(text)
        if match:
            break
    else:
        return []

    allergens: list[str] = []
    for token in _SEPARATORS.split(match.group("allergens")):
        token = token.strip(" .-").lower()
        token = ALIASES.get(token, token)
        if token and token not in allergens:
            allergens.append(token)
    return allergens


def allergens_for(alerts: Iterable[str]) -> dict[str, str]:
    """Map allergen token -> first alert that names it."""
    found: dict[str, str] = {}
    for alert in alerts:
        for allergen in parse_allergens(alert):
            found.setdefault(allergen, alert)
    return found


def _match(allergen: str, medication_name: str) -> str | None:
    name = medication_name.lower()
    for term in (allergen, *DRUG_CLASSES.get(allergen, ())):
        if term and term in name:
            return term
    return None


def check_medication(alerts: Iterable[str], medication: Medication | str) -> list[AllergyConflict]:
    """Conflicts between one medication and a list of alerts."""
    med_name = medication if isinstance(medication, str) else medication.name
    conflicts = []
    for allergen, alert in allergens_for(alerts).items():
        matched = _match(allergen, med_name)
        if matched:
            conflicts.append(AllergyConflict(
                allergen=allergen,
                alert=alert,
                medication=med_name,
                matched=matched,
            ))
    return conflicts


def check_patient(patient: Patient) -> list[AllergyConflict]:
    """All conflicts on a patient's current medication list."""
    conflicts: list[AllergyConflict] = []
    for med in patient.medications:
        conflicts.extend(check_medication(patient.alerts, med))
    return conflicts
