"""Token and key-set models - plain value types shared across components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Optional, Tuple


@dataclass(frozen=True)
class UnverifiedClaims:
    """Issuer and audiences read from a token WITHOUT checking its signature.

    Only used to locate signing keys and to reject obviously foreign tokens
    early. Never use these values for authorization decisions.
    """

    issuer: str
    audiences: Tuple[str, ...]


@dataclass(frozen=True)
class SigningKey:
    """RSA public key published by the identity provider."""

    kid: str
    modulus: int
    exponent: int
    public_key: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class KeySet:
    """Signing keys fetched from one issuer, indexed by key id."""

    issuer: str
    keys: Mapping[str, SigningKey]
    fetched_at: float = 0.0

    def get(self, kid: str) -> Optional[SigningKey]:
        return self.keys.get(kid)

    def __contains__(self, kid: object) -> bool:
        return kid in self.keys

    def __len__(self) -> int:
        return len(self.keys)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys)


@dataclass(frozen=True)
class KeySetCacheEntry:
    """A cached key set with its fetch time and time-to-live."""

    issuer: str
    key_set: KeySet
    fetched_at: float
    ttl_seconds: float

    @property
    def expires_at(self) -> float:
        return self.fetched_at + self.ttl_seconds

    def is_fresh(self, now: float) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class VerifiedClaims:
    """Claims from a token whose signature, issuer, audience and lifetime
    have all been validated."""

    issuer: str
    audiences: Tuple[str, ...]
    email: Optional[str] = None
    sub: Optional[str] = None
    exp: Optional[float] = None
    iat: Optional[float] = None
    nbf: Optional[float] = None
    raw_claims: Mapping[str, Any] = field(default_factory=dict)
