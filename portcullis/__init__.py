"""Portcullis - Cloudflare Access request authentication.

Portcullis establishes who made a request to an application behind
Cloudflare Access, without any prior key exchange with the identity provider.

Features:
- Trusts the gateway-set email header when present
- Verifies Cf-Access-Jwt-Assertion tokens against keys discovered at runtime
- RSA-only algorithm allow-list, issuer/audience/lifetime validation
- Optional issuer-keyed signing-key cache with a fixed TTL
- Fails closed when the application audience is not configured
"""

from portcullis.cloudflare import (
    AccessAuthenticator,
    AccessKeySetFetcher,
    AccessTokenVerifier,
    CachingKeySetFetcher,
    CloudflareFactory,
    decode_unverified,
)
from portcullis.config import ASSERTION_HEADER, IDENTITY_HEADER, AccessSettings
from portcullis.core.factory import PortcullisFactory, create_factory
from portcullis.core.key_fetcher import KeySetFetcher
from portcullis.core.token_verifier import TokenVerifier
from portcullis.exceptions import (
    AudienceMismatchError,
    InvalidSignatureError,
    IssuerMismatchError,
    KeyDiscoveryError,
    MalformedTokenError,
    MissingClaimsError,
    PortcullisError,
    TokenExpiredError,
    UnauthenticatedError,
    UnknownKeyError,
)
from portcullis.mock import MockFactory, StaticKeySetFetcher
from portcullis.models import (
    KeySet,
    KeySetCacheEntry,
    SigningKey,
    UnverifiedClaims,
    VerifiedClaims,
)

__version__ = "0.1.0"

__all__ = [
    # Core interfaces
    "KeySetFetcher",
    "TokenVerifier",
    # Factory (recommended entry point)
    "create_factory",
    "PortcullisFactory",
    "CloudflareFactory",
    "MockFactory",
    # Configuration
    "AccessSettings",
    "ASSERTION_HEADER",
    "IDENTITY_HEADER",
    # Models
    "KeySet",
    "KeySetCacheEntry",
    "SigningKey",
    "UnverifiedClaims",
    "VerifiedClaims",
    # Exceptions
    "PortcullisError",
    "MalformedTokenError",
    "MissingClaimsError",
    "KeyDiscoveryError",
    "InvalidSignatureError",
    "UnknownKeyError",
    "IssuerMismatchError",
    "AudienceMismatchError",
    "TokenExpiredError",
    "UnauthenticatedError",
    # Implementations
    "AccessAuthenticator",
    "AccessKeySetFetcher",
    "AccessTokenVerifier",
    "CachingKeySetFetcher",
    "StaticKeySetFetcher",
    "decode_unverified",
]
