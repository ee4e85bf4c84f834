"""Abstract token verifier interface.

This module defines the interface for signed-token verification.
The interface is provider-agnostic - the caller supplies the key set and the
expected issuer/audience, so the verifier itself holds no tenant state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from portcullis.models import KeySet, UnverifiedClaims, VerifiedClaims


class TokenVerifier(ABC):
    """Abstract interface for JWT token verification.

    Implementations handle:
    - Structural decoding of untrusted tokens
    - Algorithm allow-listing and key selection
    - Signature verification
    - Issuer, audience and lifetime validation

    Implementations:
        - AccessTokenVerifier: Cloudflare Access assertions
    """

    @abstractmethod
    def verify(
        self,
        token: str,
        keys: KeySet,
        expected_issuer: str,
        expected_audience: str,
    ) -> VerifiedClaims:
        """Verify a token against a key set and return its claims.

        Args:
            token: The compact token string
            keys: Signing keys fetched for the token's issuer
            expected_issuer: Required exact value of the iss claim
            expected_audience: Value that must appear in the aud claim

        Returns:
            VerifiedClaims

        Raises:
            InvalidSignatureError: If the algorithm, key or signature is not acceptable
            IssuerMismatchError: If iss differs from expected_issuer
            AudienceMismatchError: If expected_audience is not in aud
            TokenExpiredError: If the token is expired or not yet valid
            MissingClaimsError: If iss or aud is absent
        """

    @abstractmethod
    def get_unverified_claims(self, token: str) -> UnverifiedClaims:
        """Extract issuer and audiences WITHOUT verifying the signature.

        WARNING: Only use this to locate signing keys or to pre-check the
        audience. Never trust unverified claims for authorization decisions.

        Raises:
            MalformedTokenError: If the token cannot be decoded
            MissingClaimsError: If iss or aud is absent
        """
