"""Abstract key-set fetcher interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from portcullis.models import KeySet


class KeySetFetcher(ABC):
    """Abstract interface for discovering an issuer's signing keys.

    Implementations:
        - AccessKeySetFetcher: fetches keys over HTTPS on every call
        - CachingKeySetFetcher: wraps another fetcher with a TTL cache
        - StaticKeySetFetcher: serves in-memory documents (local development)
    """

    @abstractmethod
    def fetch(self, issuer: str) -> KeySet:
        """Return the usable signing keys for an issuer.

        Raises:
            KeyDiscoveryError: If keys cannot be retrieved or none are usable
        """

    def invalidate(self, issuer: str) -> bool:
        """Drop any stored key set for the issuer.

        Returns:
            True if a stored key set was dropped, so a new fetch may
            return different keys. Fetchers without storage return False.
        """
        return False
