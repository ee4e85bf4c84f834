"""Abstract factory for creating authentication components."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from portcullis.config import AccessSettings
from portcullis.core.key_fetcher import KeySetFetcher
from portcullis.core.token_verifier import TokenVerifier

if TYPE_CHECKING:
    from portcullis.cloudflare.authenticator import AccessAuthenticator


class PortcullisFactory(ABC):
    """Abstract factory for creating authentication components.

    Implementations decide where signing keys come from (Cloudflare over
    HTTPS, or in-memory documents for local development). The authenticator
    they build is wired the same way in both cases.

    Usage:
        Do not instantiate this class directly. Use create_factory() instead:

        >>> from portcullis import create_factory
        >>> factory = create_factory("cloudflare")
        >>> authenticator = factory.create_authenticator()
        >>> email = authenticator.authenticate(request.headers)
    """

    def __init__(self, settings: AccessSettings):
        self.settings = settings

    @abstractmethod
    def create_key_fetcher(self) -> KeySetFetcher:
        """Create or return the cached key-set fetcher.

        The fetcher is cached so every authenticator from this factory shares
        the same key cache when caching is enabled.
        """

    @abstractmethod
    def create_token_verifier(self) -> TokenVerifier:
        """Create a token verifier configured with the factory's clock skew."""

    def create_authenticator(self) -> AccessAuthenticator:
        """Create an authenticator wired to this factory's fetcher and verifier."""
        from portcullis.cloudflare.authenticator import AccessAuthenticator

        return AccessAuthenticator(
            audience=self.settings.audience,
            key_fetcher=self.create_key_fetcher(),
            token_verifier=self.create_token_verifier(),
            issuer=self.settings.issuer,
        )


def create_factory(provider_type: str, **kwargs) -> PortcullisFactory:
    """Create a factory for the specified key source.

    Args:
        provider_type: "cloudflare" or "mock"

        **kwargs: Provider-specific configuration arguments.

            For provider_type="cloudflare":
                settings (AccessSettings, optional): Defaults to
                    AccessSettings.from_env().
                session (requests.Session, optional): Session for key discovery.

            For provider_type="mock":
                documents (dict, required): Mapping of issuer URL to JWKS document.
                settings (AccessSettings, optional): Defaults to
                    AccessSettings.from_env().

    Raises:
        ValueError: If provider_type is unknown or required arguments are missing.

    Examples:
        >>> factory = create_factory("cloudflare", settings=AccessSettings(audience="aud-tag"))
        >>> factory = create_factory("mock", documents={issuer: {"keys": [jwk]}})
    """
    if provider_type == "cloudflare":
        from portcullis.cloudflare.factory import CloudflareFactory

        return CloudflareFactory(**kwargs)
    elif provider_type == "mock":
        from portcullis.mock.factory import MockFactory

        if "documents" not in kwargs:
            raise ValueError(
                "Missing required argument 'documents' for provider_type='mock'. "
                "Example: create_factory('mock', documents={issuer: jwks})"
            )
        return MockFactory(**kwargs)
    else:
        raise ValueError(
            f"Unknown provider type: '{provider_type}'. "
            f"Valid types: 'cloudflare', 'mock'."
        )
