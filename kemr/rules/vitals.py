"""
Out-of-range flags for vital signs.
"""

from __future__ import annotations

from kemr.models import VitalsReading


SYSTOLIC_HIGH = 140
HEART_RATE_RANGE = (50, 120)
FEVER_CELSIUS = 38.0
SPO2_LOW = 92
RESP_RATE_RANGE = (10, 24)


def vitals_flags(reading: VitalsReading) -> dict[str, str]:
    """
    Return {field: reason} for each abnormal value in a reading.

    An empty dict means everything is within range.
    """
    flags: dict[str, str] = {}
    if reading.is_bp_abnormal:
        flags["blood_pressure"] = f"Systolic above {SYSTOLIC_HIGH} mmHg"
    low, high = HEART_RATE_RANGE
    if not low <= reading.heart_rate <= high:
        flags["heart_rate"] = f"Heart rate outside {low}-{high} bpm"
    if reading.temperature >= FEVER_CELSIUS:
        flags["temperature"] = "Febrile"
    if reading.oxygen_saturation < SPO2_LOW:
        flags["oxygen_saturation"] = f"SpO2 below {SPO2_LOW}%"
    low, high = RESP_RATE_RANGE
    if not low <= reading.respiratory_rate <= high:
        flags["respiratory_rate"] = f"Respiratory rate outside {low}-{high}/min"
    return flags
