"""
Tests for clinician resolution from bearer tokens.
"""

import time

import pytest
from fastapi import HTTPException
from jose import jwt


SECRET = "super-secret-jwt-token"


def _token(secret=SECRET, **claims):
    payload = {
        "sub": "user-123",
        "aud": "authenticated",
        "exp": int(time.time()) + 3600,
        "email": "njeri@example.org",
        "user_metadata": {"full_name": "Dr. Njeri Mwangi"},
    }
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


class TestDecodeToken:

    def test_valid_token(self):
        from kemr.auth import decode_token

        claims = decode_token(_token(), secret=SECRET)
        assert claims["sub"] == "user-123"

    def test_wrong_secret(self):
        from kemr.auth import decode_token

        with pytest.raises(HTTPException) as exc_info:
            decode_token(_token(secret="other"), secret=SECRET)
        assert exc_info.value.status_code == 401

    def test_expired(self):
        from kemr.auth import decode_token

        with pytest.raises(HTTPException) as exc_info:
            decode_token(_token(exp=int(time.time()) - 10), secret=SECRET)
        assert exc_info.value.status_code == 401

    def test_not_configured(self):
        from kemr.auth import decode_token

        with pytest.raises(HTTPException) as exc_info:
            decode_token(_token())
        assert exc_info.value.status_code == 503


class TestClinicianFromClaims:

    def test_prefers_display_name(self):
        from kemr.auth import clinician_from_claims

        clinician = clinician_from_claims({
            "sub": "u1",
            "email": "a@b.c",
            "user_metadata": {"display_name": "Dr. A", "full_name": "Alice B"},
            "app_metadata": {"role": "nurse"},
        })
        assert clinician.name == "Dr. A"
        assert clinician.role == "nurse"

    def test_falls_back_to_email_then_sub(self):
        from kemr.auth import clinician_from_claims

        assert clinician_from_claims({"sub": "u1", "email": "a@b.c"}).name == "a@b.c"
        assert clinician_from_claims({"sub": "u1"}).name == "u1"

    def test_default_clinician_from_settings(self):
        from kemr.auth import default_clinician

        clinician = default_clinician()
        assert clinician.id == "local"
        assert clinician.name == "Dr. Test Clinician"

    def test_missing_subject_is_unauthorized(self):
        from kemr.auth import clinician_from_claims

        with pytest.raises(HTTPException) as exc:
            clinician_from_claims({"email": "a@b.c"})
        assert exc.value.status_code == 401
