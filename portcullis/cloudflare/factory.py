"""Factory for Cloudflare Access components."""

from __future__ import annotations

from typing import Optional

import requests

from portcullis.config import AccessSettings
from portcullis.core.factory import PortcullisFactory
from portcullis.core.key_fetcher import KeySetFetcher
from portcullis.core.token_verifier import TokenVerifier


class CloudflareFactory(PortcullisFactory):
    """Factory for Cloudflare Access components.

    Creates an AccessKeySetFetcher (wrapped in a CachingKeySetFetcher when
    ``settings.jwks_ttl_seconds`` is positive), an AccessTokenVerifier and
    an AccessAuthenticator that work together.

    Args:
        settings: Authentication settings. Defaults to AccessSettings.from_env().
        session: Optional requests.Session used for key discovery.

    Examples:
        >>> factory = CloudflareFactory(AccessSettings(audience="aud-tag", jwks_ttl_seconds=300))
        >>> authenticator = factory.create_authenticator()
    """

    def __init__(
        self,
        settings: Optional[AccessSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(settings if settings is not None else AccessSettings.from_env())
        self.session = session
        self._fetcher: Optional[KeySetFetcher] = None

    def create_key_fetcher(self) -> KeySetFetcher:
        if self._fetcher is None:
            from portcullis.cloudflare.jwks import AccessKeySetFetcher

            fetcher: KeySetFetcher = AccessKeySetFetcher(
                timeout=self.settings.fetch_timeout_seconds,
                session=self.session,
            )
            if self.settings.jwks_ttl_seconds > 0:
                from portcullis.cloudflare.cache import CachingKeySetFetcher

                fetcher = CachingKeySetFetcher(fetcher, ttl_seconds=self.settings.jwks_ttl_seconds)
            self._fetcher = fetcher
        return self._fetcher

    def create_token_verifier(self) -> TokenVerifier:
        from portcullis.cloudflare.token_verifier import AccessTokenVerifier

        return AccessTokenVerifier(clock_skew_seconds=self.settings.clock_skew_seconds)
