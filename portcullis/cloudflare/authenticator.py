"""Request authentication for applications behind Cloudflare Access.

Two paths:
- Direct header: ``Cf-Access-Authenticated-User-Email`` set by the gateway is
  returned as-is. Trusting it relies on the deployment only accepting traffic
  through Cloudflare, which strips and re-sets the header.
- Token: ``Cf-Access-Jwt-Assertion`` is decoded, its signing keys discovered,
  and the token fully verified before the email claim is returned.

Every failure surfaces as UnauthenticatedError. The specific cause is logged
and kept on the exception, never put in its message.
"""

from __future__ import annotations

from typing import Mapping, Optional

import structlog
from requests.structures import CaseInsensitiveDict

from portcullis.config import ASSERTION_HEADER, IDENTITY_HEADER
from portcullis.core.key_fetcher import KeySetFetcher
from portcullis.core.token_verifier import TokenVerifier
from portcullis.exceptions import (
    AudienceMismatchError,
    IssuerMismatchError,
    PortcullisError,
    UnauthenticatedError,
    UnknownKeyError,
)
from portcullis.models import UnverifiedClaims, VerifiedClaims

log = structlog.get_logger()


class AccessAuthenticator:
    """Resolves the authenticated email for an inbound request.

    Instances hold only configuration and collaborators; each call to
    authenticate() is independent and safe to run concurrently.

    Args:
        audience: Expected application audience tag. Empty means every
            token-based request is rejected.
        key_fetcher: Discovers the issuer's signing keys.
        token_verifier: Verifies tokens against the fetched keys.
        issuer: Optional issuer pin. Tokens from other issuers are rejected
            before any network I/O.
    """

    def __init__(
        self,
        audience: str,
        key_fetcher: KeySetFetcher,
        token_verifier: TokenVerifier,
        issuer: Optional[str] = None,
    ):
        self.audience = (audience or "").strip()
        self.issuer = issuer
        self._key_fetcher = key_fetcher
        self._token_verifier = token_verifier

    def authenticate(self, headers: Mapping[str, str]) -> str:
        """Return the authenticated email for a request.

        Args:
            headers: Request headers. Names are matched case-insensitively.

        Raises:
            UnauthenticatedError: If no identity can be established
        """
        headers = CaseInsensitiveDict(headers)

        email = (headers.get(IDENTITY_HEADER) or "").strip()
        if email:
            log.debug("authenticated_via_header")
            return email

        token = (headers.get(ASSERTION_HEADER) or "").strip()
        if not token:
            log.info("authentication_failed", code="UNAUTHENTICATED", reason="no credentials")
            raise UnauthenticatedError("no credentials")

        try:
            return self._authenticate_token(token)
        except UnauthenticatedError as e:
            log.warning("authentication_failed", code=e.detail_code, reason=e.reason)
            raise
        except PortcullisError as e:
            log.warning("authentication_failed", code=e.code, reason=e.message)
            raise UnauthenticatedError(e.message, detail_code=e.code) from e

    def _authenticate_token(self, token: str) -> str:
        unverified = self._token_verifier.get_unverified_claims(token)

        if not self.audience:
            raise UnauthenticatedError("not configured")

        self._precheck(unverified)

        claims = self._verify(token, unverified.issuer)

        email = (claims.email or "").strip()
        if not email:
            raise UnauthenticatedError("missing email claim", detail_code="MISSING_CLAIMS")

        log.debug("authenticated_via_token", issuer=claims.issuer)
        return email

    def _precheck(self, unverified: UnverifiedClaims) -> None:
        """Reject foreign tokens before any network I/O."""
        if self.issuer is not None and unverified.issuer != self.issuer:
            raise IssuerMismatchError(unverified.issuer, self.issuer)
        if self.audience not in unverified.audiences:
            raise AudienceMismatchError(self.audience, unverified.audiences)

    def _verify(self, token: str, issuer: str) -> VerifiedClaims:
        keys = self._key_fetcher.fetch(issuer)
        try:
            return self._token_verifier.verify(token, keys, issuer, self.audience)
        except UnknownKeyError as e:
            # Only stored key sets can be stale; a fresh fetch would not differ.
            if not self._key_fetcher.invalidate(issuer):
                raise
            log.info("signing_key_not_cached_refreshing", kid=e.kid, issuer=issuer)
            keys = self._key_fetcher.fetch(issuer)
            return self._token_verifier.verify(token, keys, issuer, self.audience)
