"""JWT verification."""

import time

import jwt
import pytest

from fd_accounts.auth.tokens import JwtVerifier
from fd_accounts.core.config import AuthConfig
from fd_accounts.core.errors import AuthenticationError, ConfigurationError

SECRET = "unit-test-secret"


def _token(secret: str = SECRET, **claims) -> str:
    payload = {"sub": "asha@example.com", "exp": int(time.time()) + 300, **claims}
    return jwt.encode(payload, secret, algorithm="HS256")


def test_valid_token():
    verifier = JwtVerifier(AuthConfig(shared_secret=SECRET))
    principal = verifier.verify(_token(name="Asha", roles="ADMIN"))
    assert principal.subject == "asha@example.com"
    assert principal.login_email == "asha@example.com"
    assert principal.roles == ("ADMIN",)


def test_email_claim_preferred_for_login():
    verifier = JwtVerifier(AuthConfig(shared_secret=SECRET))
    principal = verifier.verify(_token(sub="u-17", email="vikram@example.com"))
    assert principal.login_email == "vikram@example.com"


def test_wrong_signature():
    verifier = JwtVerifier(AuthConfig(shared_secret=SECRET))
    with pytest.raises(AuthenticationError):
        verifier.verify(_token(secret="someone-else"))


def test_expired():
    verifier = JwtVerifier(AuthConfig(shared_secret=SECRET, leeway_seconds=0))
    with pytest.raises(AuthenticationError):
        verifier.verify(_token(exp=int(time.time()) - 60))


def test_audience_checked_when_configured():
    verifier = JwtVerifier(AuthConfig(shared_secret=SECRET, audience="fd-accounts"))
    assert verifier.verify(_token(aud="fd-accounts")).subject == "asha@example.com"
    with pytest.raises(AuthenticationError):
        verifier.verify(_token(aud="other-service"))


def test_empty_token():
    verifier = JwtVerifier(AuthConfig(shared_secret=SECRET))
    with pytest.raises(AuthenticationError):
        verifier.verify("")


def test_enabled_without_key_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        JwtVerifier(AuthConfig(enabled=True))


def test_disabled_reads_claims_without_verifying():
    verifier = JwtVerifier(AuthConfig(enabled=False))
    principal = verifier.verify(_token(secret="anything"))
    assert principal.subject == "asha@example.com"
    with pytest.raises(AuthenticationError):
        verifier.verify("not-a-jwt")
