"""Cloudflare Access JWT token verifier.

Validates assertions in a fixed order:
- algorithm is in the RSA allow-list (before any key lookup)
- kid names a key in the supplied key set
- signature
- issuer (exact string match)
- audience
- exp/nbf with a bounded clock skew
"""

from __future__ import annotations

import math
import time
from typing import Any, Callable, Mapping, Optional, Tuple

import jwt
import structlog

from portcullis.cloudflare.decoder import decode_unverified, normalize_audience
from portcullis.config import DEFAULT_CLOCK_SKEW_SECONDS, MAX_CLOCK_SKEW_SECONDS
from portcullis.core.token_verifier import TokenVerifier
from portcullis.exceptions import (
    AudienceMismatchError,
    InvalidSignatureError,
    IssuerMismatchError,
    MalformedTokenError,
    MissingClaimsError,
    TokenExpiredError,
    UnknownKeyError,
)
from portcullis.models import KeySet, UnverifiedClaims, VerifiedClaims

log = structlog.get_logger()

RSA_ALGORITHMS = frozenset({"RS256", "RS384", "RS512", "PS256", "PS384", "PS512"})

# Claims checked here rather than by PyJWT so the order of checks is fixed.
_PYJWT_OPTIONS = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_iss": False,
    "verify_aud": False,
}


def _numeric_claim(claims: Mapping[str, Any], name: str) -> Optional[float]:
    value = claims.get(name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedTokenError(f"Claim '{name}' must be a number")
    try:
        value = float(value)
    except OverflowError:
        raise MalformedTokenError(f"Claim '{name}' is out of range")
    # The JSON decoder accepts Infinity and NaN, which would disable the check.
    if not math.isfinite(value):
        raise MalformedTokenError(f"Claim '{name}' is out of range")
    return value


def _informational_claim(claims: Mapping[str, Any], name: str) -> Optional[float]:
    """Like _numeric_claim, but an unusable value is dropped instead of rejected."""
    try:
        return _numeric_claim(claims, name)
    except MalformedTokenError:
        return None


class AccessTokenVerifier(TokenVerifier):
    """Verifies Cloudflare Access assertions against a fetched key set.

    Args:
        clock_skew_seconds: Allowed clock skew for exp/nbf validation.
            Defaults to 60, must be between 0 and 300.
        clock: Returns the current time in seconds since the epoch.
    """

    def __init__(
        self,
        clock_skew_seconds: int = DEFAULT_CLOCK_SKEW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        if not 0 <= clock_skew_seconds <= MAX_CLOCK_SKEW_SECONDS:
            raise ValueError(
                f"clock_skew_seconds must be between 0 and {MAX_CLOCK_SKEW_SECONDS}"
            )
        self.clock_skew_seconds = clock_skew_seconds
        self._clock = clock

    def _select_key(self, token: str, keys: KeySet) -> Tuple[str, Any]:
        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError as e:
            raise MalformedTokenError(f"Invalid token header: {e}")

        alg = header.get("alg")
        if alg not in RSA_ALGORITHMS:
            log.warning("token_algorithm_rejected", alg=alg)
            raise InvalidSignatureError(f"Signing algorithm not allowed: {alg}")

        kid = header.get("kid")
        if not isinstance(kid, str) or not kid:
            raise InvalidSignatureError("Token missing kid header")

        key = keys.get(kid)
        if key is None:
            log.warning("signing_key_not_found", kid=kid, available_kids=list(keys))
            raise UnknownKeyError(kid)

        return alg, key.public_key

    def _check_lifetime(self, claims: Mapping[str, Any]) -> None:
        now = self._clock()
        exp = _numeric_claim(claims, "exp")
        nbf = _numeric_claim(claims, "nbf")

        if exp is not None and now > exp + self.clock_skew_seconds:
            raise TokenExpiredError()
        if nbf is not None and now + self.clock_skew_seconds < nbf:
            raise TokenExpiredError("Token is not yet valid")

    def verify(
        self,
        token: str,
        keys: KeySet,
        expected_issuer: str,
        expected_audience: str,
    ) -> VerifiedClaims:
        """Verify an assertion and return its claims."""
        if not isinstance(token, str) or token.count(".") != 2:
            raise MalformedTokenError("Token must have exactly 3 segments")

        alg, public_key = self._select_key(token, keys)

        try:
            claims = jwt.decode(
                token,
                key=public_key,
                algorithms=[alg],
                options=_PYJWT_OPTIONS,
            )
        except jwt.InvalidSignatureError:
            raise InvalidSignatureError()
        except jwt.DecodeError as e:
            raise MalformedTokenError(f"Failed to decode token: {e}")
        except jwt.InvalidTokenError as e:
            raise InvalidSignatureError(f"Invalid token: {e}")

        issuer = claims.get("iss")
        if not isinstance(issuer, str) or not issuer:
            raise MissingClaimsError("iss")
        if issuer != expected_issuer:
            raise IssuerMismatchError(issuer, expected_issuer)

        audiences = normalize_audience(claims.get("aud"))
        if expected_audience not in audiences:
            raise AudienceMismatchError(expected_audience, audiences)

        self._check_lifetime(claims)

        email = claims.get("email")
        sub = claims.get("sub")
        verified = VerifiedClaims(
            issuer=issuer,
            audiences=audiences,
            email=email if isinstance(email, str) else None,
            sub=sub if isinstance(sub, str) else None,
            exp=_numeric_claim(claims, "exp"),
            iat=_informational_claim(claims, "iat"),
            nbf=_numeric_claim(claims, "nbf"),
            raw_claims=claims,
        )

        log.debug("token_verified", issuer=issuer, sub=verified.sub)
        return verified

    def get_unverified_claims(self, token: str) -> UnverifiedClaims:
        return decode_unverified(token)
