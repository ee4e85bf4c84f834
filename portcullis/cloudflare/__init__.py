"""Cloudflare Access implementation of Portcullis components."""

from portcullis.cloudflare.authenticator import AccessAuthenticator
from portcullis.cloudflare.cache import CachingKeySetFetcher
from portcullis.cloudflare.decoder import decode_unverified
from portcullis.cloudflare.factory import CloudflareFactory
from portcullis.cloudflare.jwks import AccessKeySetFetcher
from portcullis.cloudflare.token_verifier import AccessTokenVerifier

__all__ = [
    "AccessAuthenticator",
    "AccessKeySetFetcher",
    "AccessTokenVerifier",
    "CachingKeySetFetcher",
    "CloudflareFactory",
    "decode_unverified",
]
