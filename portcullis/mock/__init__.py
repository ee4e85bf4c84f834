"""Offline Portcullis components for local development and testing."""

from portcullis.mock.factory import MockFactory
from portcullis.mock.key_fetcher import StaticKeySetFetcher

__all__ = [
    "MockFactory",
    "StaticKeySetFetcher",
]
