"""Cloudflare Access signing-key discovery.

Keys are published at ``<issuer>/cdn-cgi/access/certs`` as a JWKS document.
Only RSA keys are used; malformed entries are skipped rather than failing
the whole key set.
"""

from __future__ import annotations

import binascii
import time
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import urlparse

import requests
import structlog
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicNumbers
from jwt.utils import base64url_decode

from portcullis.config import DEFAULT_FETCH_TIMEOUT_SECONDS
from portcullis.core.key_fetcher import KeySetFetcher
from portcullis.exceptions import KeyDiscoveryError
from portcullis.models import KeySet, SigningKey

log = structlog.get_logger()

CERTS_PATH = "/cdn-cgi/access/certs"


def certs_url(issuer: str) -> str:
    """Build the key discovery URL for an issuer."""
    return issuer.rstrip("/") + CERTS_PATH


def _decode_int(value: Any) -> Optional[int]:
    """Decode a base64url big-endian unsigned integer, or None if invalid."""
    if not isinstance(value, str) or not value:
        return None
    try:
        raw = base64url_decode(value)
    except (binascii.Error, ValueError):
        return None
    if not raw:
        return None
    result = 0
    for byte in raw:
        result = (result << 8) | byte
    return result


def parse_signing_key(entry: Any) -> Optional[SigningKey]:
    """Convert one JWKS entry into a SigningKey.

    Returns None for entries that are not usable RSA keys.
    """
    if not isinstance(entry, Mapping):
        return None

    kty = entry.get("kty")
    if not isinstance(kty, str) or kty.upper() != "RSA":
        return None

    kid = entry.get("kid")
    if not isinstance(kid, str) or not kid:
        return None

    modulus = _decode_int(entry.get("n"))
    exponent = _decode_int(entry.get("e"))
    if not modulus or not exponent:
        return None

    try:
        public_key = RSAPublicNumbers(exponent, modulus).public_key()
    except ValueError:
        return None

    return SigningKey(kid=kid, modulus=modulus, exponent=exponent, public_key=public_key)


def parse_key_set(issuer: str, document: Any, fetched_at: float = 0.0) -> KeySet:
    """Build a KeySet from a JWKS document.

    Raises:
        KeyDiscoveryError: If the document has no keys array or no usable keys
    """
    entries = document.get("keys") if isinstance(document, Mapping) else None
    if not isinstance(entries, list):
        raise KeyDiscoveryError("Key set document has no keys array", issuer=issuer)

    keys: Dict[str, SigningKey] = {}
    for entry in entries:
        key = parse_signing_key(entry)
        if key is None:
            log.debug(
                "jwks_key_skipped",
                issuer=issuer,
                kid=entry.get("kid") if isinstance(entry, Mapping) else None,
            )
            continue
        if key.kid in keys:
            log.debug("jwks_duplicate_kid_ignored", issuer=issuer, kid=key.kid)
            continue
        keys[key.kid] = key

    if not keys:
        raise KeyDiscoveryError("No usable keys in key set", issuer=issuer)

    return KeySet(issuer=issuer, keys=keys, fetched_at=fetched_at)


class AccessKeySetFetcher(KeySetFetcher):
    """Fetches an issuer's signing keys over HTTPS on every call.

    Args:
        timeout: Request timeout in seconds. Defaults to 5.
        session: Optional requests.Session to reuse connections.
        clock: Returns the current time; stamped on fetched key sets.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.timeout = timeout
        self._session = session
        self._clock = clock

    def _get(self, url: str) -> requests.Response:
        if self._session is not None:
            return self._session.get(url, timeout=self.timeout)
        return requests.get(url, timeout=self.timeout)

    def fetch(self, issuer: str) -> KeySet:
        """Fetch and parse the issuer's JWKS document."""
        if not isinstance(issuer, str) or not issuer:
            raise KeyDiscoveryError("Issuer is empty")

        parsed = urlparse(issuer)
        if parsed.scheme != "https" or not parsed.netloc:
            raise KeyDiscoveryError(f"Issuer must be an https URL: {issuer}", issuer=issuer)

        url = certs_url(issuer)
        try:
            resp = self._get(url)
            if not 200 <= resp.status_code < 300:
                raise KeyDiscoveryError(
                    f"Key discovery returned HTTP {resp.status_code}", issuer=issuer
                )
            document = resp.json()
        except KeyDiscoveryError as e:
            log.error("jwks_fetch_failed", jwks_url=url, error=e.message)
            raise
        except (requests.RequestException, ValueError) as e:
            log.error("jwks_fetch_failed", jwks_url=url, error=str(e))
            raise KeyDiscoveryError(f"Failed to fetch JWKS: {e}", issuer=issuer) from e

        key_set = parse_key_set(issuer, document, fetched_at=self._clock())
        log.debug("jwks_fetched", jwks_url=url, key_count=len(key_set))
        return key_set
