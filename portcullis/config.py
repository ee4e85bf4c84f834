"""Runtime configuration for Cloudflare Access authentication.

Settings are read from environment variables:
    CF_ACCESS_AUD: Application audience tag (required for token validation)
    CF_ACCESS_TEAM_DOMAIN: Team domain, e.g. "acme.cloudflareaccess.com".
        When set, tokens from any other issuer are rejected before key discovery.
    CF_ACCESS_JWKS_TTL_SECONDS: Cache signing keys for this long (0 disables caching)
    CF_ACCESS_CLOCK_SKEW_SECONDS: Allowed clock skew for exp/nbf validation (0-300)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

ENV_AUDIENCE = "CF_ACCESS_AUD"
ENV_TEAM_DOMAIN = "CF_ACCESS_TEAM_DOMAIN"
ENV_JWKS_TTL = "CF_ACCESS_JWKS_TTL_SECONDS"
ENV_CLOCK_SKEW = "CF_ACCESS_CLOCK_SKEW_SECONDS"

IDENTITY_HEADER = "Cf-Access-Authenticated-User-Email"
ASSERTION_HEADER = "Cf-Access-Jwt-Assertion"

DEFAULT_CLOCK_SKEW_SECONDS = 60
MAX_CLOCK_SKEW_SECONDS = 300
DEFAULT_FETCH_TIMEOUT_SECONDS = 5.0


def issuer_from_team_domain(team_domain: str) -> str:
    """Normalize a team domain or URL to the issuer string Cloudflare uses.

    >>> issuer_from_team_domain("acme.cloudflareaccess.com")
    'https://acme.cloudflareaccess.com'
    """
    domain = team_domain.strip().rstrip("/")
    if domain.startswith("https://"):
        return domain
    if domain.startswith("http://"):
        raise ValueError(f"Team domain must use https: {team_domain}")
    return f"https://{domain}"


def _int_setting(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class AccessSettings:
    """Configuration consumed by the authenticator.

    An empty ``audience`` is allowed here; the authenticator then rejects every
    token-based request instead of accepting it.
    """

    audience: str = ""
    issuer: Optional[str] = None
    jwks_ttl_seconds: int = 0
    clock_skew_seconds: int = DEFAULT_CLOCK_SKEW_SECONDS
    fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS

    def __post_init__(self):
        if not 0 <= self.clock_skew_seconds <= MAX_CLOCK_SKEW_SECONDS:
            raise ValueError(
                f"clock_skew_seconds must be between 0 and {MAX_CLOCK_SKEW_SECONDS}, "
                f"got {self.clock_skew_seconds}"
            )
        if self.jwks_ttl_seconds < 0:
            raise ValueError(f"jwks_ttl_seconds must not be negative, got {self.jwks_ttl_seconds}")
        if self.fetch_timeout_seconds <= 0:
            raise ValueError(
                f"fetch_timeout_seconds must be positive, got {self.fetch_timeout_seconds}"
            )

    @property
    def is_configured(self) -> bool:
        return bool(self.audience.strip())

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AccessSettings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read from. Defaults to os.environ.

        Raises:
            ValueError: If a numeric setting is not an integer or out of range
        """
        if environ is None:
            environ = os.environ

        team_domain = environ.get(ENV_TEAM_DOMAIN, "").strip()
        return cls(
            audience=environ.get(ENV_AUDIENCE, "").strip(),
            issuer=issuer_from_team_domain(team_domain) if team_domain else None,
            jwks_ttl_seconds=_int_setting(environ, ENV_JWKS_TTL, 0),
            clock_skew_seconds=_int_setting(environ, ENV_CLOCK_SKEW, DEFAULT_CLOCK_SKEW_SECONDS),
        )
