"""Portcullis exceptions.

All exceptions inherit from PortcullisError for easy catching.
"""

from __future__ import annotations

from typing import Optional, Sequence


class PortcullisError(Exception):
    """Base exception for Portcullis errors."""

    def __init__(self, message: str, code: str):
        self.message = message
        self.code = code
        super().__init__(message)


# ==================== Token Errors ====================


class MalformedTokenError(PortcullisError):
    """Raised when a token cannot be split or decoded."""

    def __init__(self, message: str = "Malformed token"):
        super().__init__(message=message, code="MALFORMED_TOKEN")


class MissingClaimsError(PortcullisError):
    """Raised when a required claim is absent or has the wrong shape."""

    def __init__(self, claim: str, message: Optional[str] = None):
        super().__init__(
            message=message or f"Token missing required claim: {claim}",
            code="MISSING_CLAIMS",
        )
        self.claim = claim


class InvalidSignatureError(PortcullisError):
    """Raised when token signature verification fails."""

    def __init__(self, message: str = "Token signature verification failed"):
        super().__init__(message=message, code="INVALID_SIGNATURE")


class UnknownKeyError(InvalidSignatureError):
    """Raised when the token's kid is not in the key set."""

    def __init__(self, kid: str):
        super().__init__(message=f"Signing key not found for kid: {kid}")
        self.kid = kid


class IssuerMismatchError(PortcullisError):
    """Raised when the token issuer is not the expected one."""

    def __init__(self, issuer: str, expected: str):
        super().__init__(
            message=f"Token issuer '{issuer}' does not match '{expected}'",
            code="ISSUER_MISMATCH",
        )
        self.issuer = issuer
        self.expected = expected


class AudienceMismatchError(PortcullisError):
    """Raised when the expected audience is not among the token audiences."""

    def __init__(self, expected: str, audiences: Sequence[str] = ()):
        super().__init__(
            message=f"Token audience does not include '{expected}'",
            code="AUDIENCE_MISMATCH",
        )
        self.expected = expected
        self.audiences = tuple(audiences)


class TokenExpiredError(PortcullisError):
    """Raised when token is expired or not yet valid."""

    def __init__(self, message: str = "Token has expired"):
        super().__init__(message=message, code="TOKEN_EXPIRED")


# ==================== Key Discovery Errors ====================


class KeyDiscoveryError(PortcullisError):
    """Raised when the issuer's signing keys cannot be retrieved."""

    def __init__(self, message: str, issuer: Optional[str] = None):
        super().__init__(message=message, code="KEY_DISCOVERY_FAILED")
        self.issuer = issuer


# ==================== Authentication Errors ====================


class UnauthenticatedError(PortcullisError):
    """Raised when a request cannot be authenticated.

    The message is deliberately generic so it can be returned to the caller.
    ``reason`` and ``detail_code`` keep the internal cause for server-side
    diagnostics only.
    """

    def __init__(self, reason: str, detail_code: str = "UNAUTHENTICATED"):
        super().__init__(message="Unauthenticated", code="UNAUTHENTICATED")
        self.reason = reason
        self.detail_code = detail_code
