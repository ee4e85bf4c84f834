"""Tests for request authentication."""

from unittest.mock import Mock, patch

import pytest
from structlog.testing import capture_logs

from conftest import AUDIENCE, ISSUER, make_jwk, make_token
from portcullis.cloudflare.authenticator import AccessAuthenticator
from portcullis.cloudflare.cache import CachingKeySetFetcher
from portcullis.cloudflare.jwks import AccessKeySetFetcher
from portcullis.cloudflare.token_verifier import AccessTokenVerifier
from portcullis.config import ASSERTION_HEADER, IDENTITY_HEADER
from portcullis.exceptions import (
    AudienceMismatchError,
    InvalidSignatureError,
    KeyDiscoveryError,
    UnauthenticatedError,
)
from portcullis.mock.key_fetcher import StaticKeySetFetcher


@pytest.fixture
def fetcher(jwks_document):
    return StaticKeySetFetcher({ISSUER: jwks_document})


@pytest.fixture
def authenticator(fetcher):
    return AccessAuthenticator(
        audience=AUDIENCE,
        key_fetcher=fetcher,
        token_verifier=AccessTokenVerifier(),
    )


def _response(status_code=200, document=None):
    resp = Mock()
    resp.status_code = status_code
    resp.json.return_value = document
    return resp


# ==================== Direct Header Path ====================


def test_identity_header_is_returned_without_key_discovery(authenticator, fetcher):
    email = authenticator.authenticate({IDENTITY_HEADER: "  alice@example.com "})

    assert email == "alice@example.com"
    assert fetcher.requested == []


def test_identity_header_wins_over_assertion(authenticator, fetcher):
    email = authenticator.authenticate({
        IDENTITY_HEADER: "alice@example.com",
        ASSERTION_HEADER: "garbage",
    })

    assert email == "alice@example.com"
    assert fetcher.requested == []


def test_header_names_are_case_insensitive(authenticator):
    assert authenticator.authenticate({IDENTITY_HEADER.lower(): "bob@example.com"}) == "bob@example.com"


def test_identity_header_ignores_audience_configuration(fetcher):
    authenticator = AccessAuthenticator("", fetcher, AccessTokenVerifier())

    assert authenticator.authenticate({IDENTITY_HEADER: "alice@example.com"}) == "alice@example.com"


def test_identity_header_makes_no_network_call():
    authenticator = AccessAuthenticator(AUDIENCE, AccessKeySetFetcher(), AccessTokenVerifier())

    with patch("portcullis.cloudflare.jwks.requests.get") as mock_get:
        assert authenticator.authenticate({IDENTITY_HEADER: "alice@example.com"}) == "alice@example.com"

    mock_get.assert_not_called()


# ==================== No Credentials ====================


@pytest.mark.parametrize(
    "headers",
    [
        {},
        {IDENTITY_HEADER: "   "},
        {ASSERTION_HEADER: ""},
        {IDENTITY_HEADER: "", ASSERTION_HEADER: "  "},
    ],
)
def test_no_credentials(authenticator, fetcher, headers):
    with pytest.raises(UnauthenticatedError) as exc:
        authenticator.authenticate(headers)

    assert exc.value.reason == "no credentials"
    assert str(exc.value) == "Unauthenticated"
    assert fetcher.requested == []


# ==================== Token Path ====================


def test_valid_assertion(authenticator, fetcher, token):
    assert authenticator.authenticate({ASSERTION_HEADER: token}) == "alice@example.com"
    assert fetcher.requested == [ISSUER]


def test_email_is_trimmed(authenticator, private_key):
    token = make_token(private_key, email="  carol@example.com ")

    assert authenticator.authenticate({ASSERTION_HEADER: token}) == "carol@example.com"


@pytest.mark.parametrize("email", [None, "", "   ", 42])
def test_missing_email_claim(authenticator, private_key, email):
    token = make_token(private_key, email=email)

    with pytest.raises(UnauthenticatedError) as exc:
        authenticator.authenticate({ASSERTION_HEADER: token})

    assert exc.value.reason == "missing email claim"


def test_not_configured_fails_closed(fetcher, token):
    authenticator = AccessAuthenticator("  ", fetcher, AccessTokenVerifier())

    with pytest.raises(UnauthenticatedError) as exc:
        authenticator.authenticate({ASSERTION_HEADER: token})

    assert exc.value.reason == "not configured"
    assert fetcher.requested == []


def test_audience_precheck_skips_key_discovery(authenticator, fetcher, private_key):
    token = make_token(private_key, aud=["other-app"])

    with pytest.raises(UnauthenticatedError) as exc:
        authenticator.authenticate({ASSERTION_HEADER: token})

    assert exc.value.detail_code == "AUDIENCE_MISMATCH"
    assert isinstance(exc.value.__cause__, AudienceMismatchError)
    assert fetcher.requested == []


def test_issuer_pin_skips_key_discovery(fetcher, private_key):
    authenticator = AccessAuthenticator(AUDIENCE, fetcher, AccessTokenVerifier(), issuer=ISSUER)
    token = make_token(private_key, iss="https://evil.example.com")

    with pytest.raises(UnauthenticatedError) as exc:
        authenticator.authenticate({ASSERTION_HEADER: token})

    assert exc.value.detail_code == "ISSUER_MISMATCH"
    assert fetcher.requested == []


@pytest.mark.parametrize("token", ["garbage", "a.b", "Zm9v.YmFy.YmF6"])
def test_garbage_assertion(authenticator, token):
    with pytest.raises(UnauthenticatedError) as exc:
        authenticator.authenticate({ASSERTION_HEADER: token})

    assert exc.value.detail_code in ("MALFORMED_TOKEN", "INVALID_SIGNATURE")


def test_forged_assertion(authenticator, other_private_key):
    token = make_token(other_private_key)

    with pytest.raises(UnauthenticatedError) as exc:
        authenticator.authenticate({ASSERTION_HEADER: token})

    assert exc.value.detail_code == "INVALID_SIGNATURE"
    assert isinstance(exc.value.__cause__, InvalidSignatureError)


def test_oversized_expiry_from_self_signed_issuer_is_rejected(jwks_document, other_private_key):
    self_hosted = "https://self-hosted.example.com"
    fetcher = StaticKeySetFetcher({
        ISSUER: jwks_document,
        self_hosted: {"keys": [make_jwk(other_private_key)]},
    })
    authenticator = AccessAuthenticator(AUDIENCE, fetcher, AccessTokenVerifier())
    token = make_token(other_private_key, iss=self_hosted, exp=10**400)

    with pytest.raises(UnauthenticatedError) as exc:
        authenticator.authenticate({ASSERTION_HEADER: token})

    assert exc.value.detail_code == "MALFORMED_TOKEN"
    assert str(exc.value) == "Unauthenticated"


def test_unknown_issuer_fails_key_discovery(authenticator, private_key):
    token = make_token(private_key, iss="https://unknown.cloudflareaccess.com")

    with pytest.raises(UnauthenticatedError) as exc:
        authenticator.authenticate({ASSERTION_HEADER: token})

    assert exc.value.detail_code == "KEY_DISCOVERY_FAILED"


def test_key_discovery_http_500(token):
    authenticator = AccessAuthenticator(AUDIENCE, AccessKeySetFetcher(), AccessTokenVerifier())

    with patch("portcullis.cloudflare.jwks.requests.get", return_value=_response(500)):
        with pytest.raises(UnauthenticatedError) as exc:
            authenticator.authenticate({ASSERTION_HEADER: token})

    assert exc.value.detail_code == "KEY_DISCOVERY_FAILED"
    assert isinstance(exc.value.__cause__, KeyDiscoveryError)


def test_end_to_end_over_http(token, jwks_document):
    authenticator = AccessAuthenticator(AUDIENCE, AccessKeySetFetcher(), AccessTokenVerifier())

    with patch("portcullis.cloudflare.jwks.requests.get") as mock_get:
        mock_get.return_value = _response(document=jwks_document)
        email = authenticator.authenticate({ASSERTION_HEADER.upper(): token})

    assert email == "alice@example.com"
    mock_get.assert_called_once_with(f"{ISSUER}/cdn-cgi/access/certs", timeout=5.0)


def test_failure_reason_is_logged_not_exposed(authenticator, private_key):
    token = make_token(private_key, aud=["other-app"])

    with capture_logs() as logs:
        with pytest.raises(UnauthenticatedError) as exc:
            authenticator.authenticate({ASSERTION_HEADER: token})

    assert "other-app" not in str(exc.value)
    failures = [entry for entry in logs if entry["event"] == "authentication_failed"]
    assert failures[0]["code"] == "AUDIENCE_MISMATCH"
    assert failures[0]["log_level"] == "warning"


# ==================== Key Rotation ====================


def test_rotated_key_refreshes_cached_key_set(private_key, other_private_key):
    inner = StaticKeySetFetcher({ISSUER: {"keys": [make_jwk(other_private_key, kid="old-kid")]}})
    cache = CachingKeySetFetcher(inner, ttl_seconds=3600)
    authenticator = AccessAuthenticator(AUDIENCE, cache, AccessTokenVerifier())

    cache.fetch(ISSUER)
    inner.add_document(ISSUER, {"keys": [make_jwk(private_key)]})

    token = make_token(private_key)
    assert authenticator.authenticate({ASSERTION_HEADER: token}) == "alice@example.com"
    assert inner.requested == [ISSUER, ISSUER]


def test_unknown_key_without_cache_is_not_retried(fetcher, private_key, authenticator):
    token = make_token(private_key, kid="rotated-kid")

    with pytest.raises(UnauthenticatedError) as exc:
        authenticator.authenticate({ASSERTION_HEADER: token})

    assert exc.value.detail_code == "INVALID_SIGNATURE"
    assert fetcher.requested == [ISSUER]
