"""Shared pytest fixtures for portcullis tests."""

import time

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

ISSUER = "https://acme.cloudflareaccess.com"
AUDIENCE = "aud-tag-123"
KID = "test-kid"


def make_jwk(private_key, kid: str = KID) -> dict:
    """Build a public JWKS entry for a private key."""
    jwk = RSAAlgorithm.to_jwk(private_key.public_key(), as_dict=True)
    jwk["kid"] = kid
    jwk["alg"] = "RS256"
    return jwk


def make_token(private_key, claims=None, kid: str = KID, algorithm: str = "RS256", **overrides) -> str:
    """Mint a signed assertion with sensible Cloudflare-like defaults."""
    now = int(time.time())
    payload = {
        "iss": ISSUER,
        "aud": [AUDIENCE],
        "email": "alice@example.com",
        "sub": "user-123",
        "iat": now,
        "nbf": now,
        "exp": now + 3600,
    }
    if claims is not None:
        payload = claims
    payload.update(overrides)
    headers = {"kid": kid} if kid is not None else {}
    return jwt.encode(payload, private_key, algorithm=algorithm, headers=headers)


@pytest.fixture(scope="session")
def private_key():
    """RSA signing key for tests."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_private_key():
    """A second RSA key that is not published in the key set."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def jwks_document(private_key):
    """JWKS document publishing the test key."""
    return {"keys": [make_jwk(private_key)]}


@pytest.fixture
def key_set(jwks_document):
    """Parsed key set for the test issuer."""
    from portcullis.cloudflare.jwks import parse_key_set

    return parse_key_set(ISSUER, jwks_document)


@pytest.fixture
def token(private_key):
    """A valid assertion for the test issuer and audience."""
    return make_token(private_key)
