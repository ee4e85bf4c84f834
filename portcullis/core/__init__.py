"""Core abstractions for Portcullis authentication components."""

from portcullis.core.factory import PortcullisFactory, create_factory
from portcullis.core.key_fetcher import KeySetFetcher
from portcullis.core.token_verifier import TokenVerifier

__all__ = [
    "KeySetFetcher",
    "TokenVerifier",
    "PortcullisFactory",
    "create_factory",
]
