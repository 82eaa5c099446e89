"""
Authentication module for the dashboard.

Provides JWT verification and clinician context for FastAPI.
"""

from kemr.auth.middleware import (
  Clinician,
  clinician_from_claims,
  decode_token,
  default_clinician,
  get_current_clinician,
)

__all__ = [
  "Clinician",
  "clinician_from_claims",
  "decode_token",
  "default_clinician",
  "get_current_clinician",
]
