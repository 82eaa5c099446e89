"""
Auth middleware for FastAPI.

Resolves the acting clinician for a request. A bearer token, when present,
must be a Supabase-issued JWT; its claims supply the clinician's name, which
becomes the author of any clinical note written in that request. Requests
without a token act as the configured default clinician.
"""

from typing import Optional
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from kemr.config import get_settings


# Supabase JWT settings
ALGORITHM = "HS256"
AUDIENCE = "authenticated"

# HTTP Bearer scheme for Authorization header
security = HTTPBearer(auto_error=False)


@dataclass
class Clinician:
  """The user on whose behalf a request is made."""
  id: str
  name: str
  email: Optional[str] = None
  role: str = "clinician"


def default_clinician() -> Clinician:
  """Clinician used when no token is supplied."""
  return Clinician(id="local", name=get_settings().clinician_name)


def decode_token(token: str, secret: Optional[str] = None) -> dict:
  """
  Decode and verify a Supabase JWT token.

  Raises 503 when no JWT secret is configured and 401 for bad tokens.
  """
  secret = secret or get_settings().jwt_secret
  if not secret:
    raise HTTPException(
      status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
      detail="Token authentication not configured"
    )

  try:
    return jwt.decode(token, secret, algorithms=[ALGORITHM], audience=AUDIENCE)
  except JWTError as e:
    raise HTTPException(
      status_code=status.HTTP_401_UNAUTHORIZED,
      detail=f"Token validation failed: {str(e)}",
      headers={"WWW-Authenticate": "Bearer"},
    )


def clinician_from_claims(claims: dict) -> Clinician:
  """Build a Clinician from JWT claims. A token without a subject is 401."""
  subject = claims.get("sub")
  if not subject:
    raise HTTPException(
      status_code=status.HTTP_401_UNAUTHORIZED,
      detail="Token has no subject",
      headers={"WWW-Authenticate": "Bearer"},
    )

  metadata = claims.get("user_metadata") or {}
  email = claims.get("email")
  name = (
    metadata.get("display_name")
    or metadata.get("full_name")
    or email
    or subject
  )
  return Clinician(
    id=subject,
    name=name,
    email=email,
    role=(claims.get("app_metadata") or {}).get("role", "clinician"),
  )


async def get_current_clinician(
  credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Clinician:
  """
  Dependency to get the acting clinician.

  No token: the default clinician. Invalid token: 401.
  """
  if not credentials:
    return default_clinician()

  claims = decode_token(credentials.credentials)
  return clinician_from_claims(claims)
