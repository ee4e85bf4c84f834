"""Unverified decoding of compact signed tokens.

Reads the issuer and audiences of a token so the right signing keys can be
located. Nothing returned from here is trusted.
"""

from __future__ import annotations

from typing import Any, Tuple

import jwt

from portcullis.exceptions import MalformedTokenError, MissingClaimsError
from portcullis.models import UnverifiedClaims


def normalize_audience(aud: Any) -> Tuple[str, ...]:
    """Return the aud claim as a tuple of strings.

    Accepts a single string or a list of strings.

    Raises:
        MissingClaimsError: If aud is absent, empty, or has another shape
    """
    if isinstance(aud, str):
        audiences: Tuple[str, ...] = (aud,) if aud else ()
    elif isinstance(aud, (list, tuple)) and all(isinstance(a, str) for a in aud):
        audiences = tuple(a for a in aud if a)
    else:
        raise MissingClaimsError("aud")

    if not audiences:
        raise MissingClaimsError("aud")
    return audiences


def decode_payload(token: str) -> dict:
    """Decode the payload segment without verifying the signature."""
    if not isinstance(token, str):
        raise MalformedTokenError("Token must be a string")

    if token.count(".") != 2:
        raise MalformedTokenError("Token must have exactly 3 segments")

    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError as e:
        raise MalformedTokenError(f"Failed to decode token: {e}")


def decode_unverified(token: str) -> UnverifiedClaims:
    """Extract issuer and audiences from a token WITHOUT verification.

    Raises:
        MalformedTokenError: If the token is not three base64url JSON segments
        MissingClaimsError: If iss or aud is missing or empty
    """
    claims = decode_payload(token)

    issuer = claims.get("iss")
    if not isinstance(issuer, str) or not issuer:
        raise MissingClaimsError("iss")

    return UnverifiedClaims(issuer=issuer, audiences=normalize_audience(claims.get("aud")))
