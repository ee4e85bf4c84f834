"""Factory for offline components backed by in-memory key sets."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from portcullis.config import AccessSettings
from portcullis.core.factory import PortcullisFactory
from portcullis.core.key_fetcher import KeySetFetcher
from portcullis.core.token_verifier import TokenVerifier
from portcullis.mock.key_fetcher import StaticKeySetFetcher


class MockFactory(PortcullisFactory):
    """Factory whose authenticator never touches the network.

    Tokens are still fully verified; only key discovery is replaced by
    the registered JWKS documents.

    Args:
        documents: Mapping of issuer URL to JWKS document.
        settings: Authentication settings. Defaults to AccessSettings.from_env().
    """

    def __init__(
        self,
        documents: Mapping[str, Mapping[str, Any]],
        settings: Optional[AccessSettings] = None,
    ):
        super().__init__(settings if settings is not None else AccessSettings.from_env())
        self._fetcher = StaticKeySetFetcher(documents)

    def create_key_fetcher(self) -> KeySetFetcher:
        return self._fetcher

    def create_token_verifier(self) -> TokenVerifier:
        from portcullis.cloudflare.token_verifier import AccessTokenVerifier

        return AccessTokenVerifier(clock_skew_seconds=self.settings.clock_skew_seconds)
