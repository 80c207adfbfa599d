"""Unit tests for TokenIssuer."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
import pytest

from credvault.security import (
    AccessIdentity,
    InvalidTokenError,
    TokenIssuer,
    TokenIssuerConfig,
)

ACCESS = "access-secret"
REFRESH = "refresh-secret"


@pytest.fixture()
def config() -> TokenIssuerConfig:
    return TokenIssuerConfig(access_secret=ACCESS, refresh_secret=REFRESH)


@pytest.fixture()
def issuer(config) -> TokenIssuer:
    return TokenIssuer(config)


@pytest.fixture()
def identity() -> AccessIdentity:
    return AccessIdentity(user_id=7, username="ada", email="ada@x.io", full_name="Ada Lovelace")


class TestTokenIssuerConfig:
    def test_rejects_shared_secret(self):
        with pytest.raises(ValueError, match="distinct"):
            TokenIssuerConfig(access_secret="same", refresh_secret="same")

    def test_rejects_empty_secret(self):
        with pytest.raises(ValueError):
            TokenIssuerConfig(access_secret="", refresh_secret="r")

    def test_rejects_non_positive_lifetime(self):
        with pytest.raises(ValueError):
            TokenIssuerConfig(
                access_secret="a", refresh_secret="r", access_expires=timedelta(0)
            )

    def test_default_lifetimes(self, config):
        assert config.access_expires == timedelta(days=1)
        assert config.refresh_expires == timedelta(days=10)


class TestTokenIssuer:
    def test_access_token_carries_identity(self, issuer, identity):
        token = issuer.issue_access_token(identity)
        payload = jwt.decode(token, ACCESS, algorithms=["HS256"])

        assert payload["sub"] == "7"
        assert payload["username"] == "ada"
        assert payload["email"] == "ada@x.io"
        assert payload["full_name"] == "Ada Lovelace"
        assert payload["type"] == "access"
        assert payload["exp"] - payload["iat"] == int(timedelta(days=1).total_seconds())

    def test_refresh_token_is_signed_with_refresh_secret(self, issuer):
        token = issuer.issue_refresh_token(7)

        with pytest.raises(jwt.InvalidSignatureError):
            jwt.decode(token, ACCESS, algorithms=["HS256"])
        payload = jwt.decode(token, REFRESH, algorithms=["HS256"])
        assert payload["sub"] == "7"
        assert payload["type"] == "refresh"
        assert "username" not in payload

    def test_tokens_are_unique_within_the_same_second(self, config):
        frozen = datetime(2024, 1, 1, tzinfo=UTC)
        issuer = TokenIssuer(config, clock=lambda: frozen)

        assert issuer.issue_refresh_token(1) != issuer.issue_refresh_token(1)

    def test_verify_refresh_token_returns_claims(self, issuer):
        claims = issuer.verify_refresh_token(issuer.issue_refresh_token(42))

        assert claims.user_id == 42
        assert claims.jti
        assert claims.expires_at > datetime.now(UTC) + timedelta(days=9)

    def test_verify_rejects_access_token(self, issuer, identity):
        access = issuer.issue_access_token(identity)

        with pytest.raises(InvalidTokenError):
            issuer.verify_refresh_token(access)

    def test_verify_rejects_expired_token(self, config):
        past = datetime.now(UTC) - timedelta(days=11)
        stale = TokenIssuer(config, clock=lambda: past).issue_refresh_token(1)

        with pytest.raises(InvalidTokenError, match="expired"):
            TokenIssuer(config).verify_refresh_token(stale)

    def test_verify_rejects_garbage(self, issuer):
        with pytest.raises(InvalidTokenError):
            issuer.verify_refresh_token("not.a.jwt")

    def test_verify_rejects_wrong_type_claim(self, issuer):
        forged = jwt.encode(
            {"sub": "1", "type": "access", "jti": "x", "exp": datetime.now(UTC) + timedelta(hours=1)},
            REFRESH,
            algorithm="HS256",
        )
        with pytest.raises(InvalidTokenError, match="refresh token required"):
            issuer.verify_refresh_token(forged)

    def test_issuer_claim_is_enforced(self):
        cfg = TokenIssuerConfig(access_secret=ACCESS, refresh_secret=REFRESH, issuer="credvault")
        other = TokenIssuerConfig(access_secret=ACCESS, refresh_secret=REFRESH, issuer="elsewhere")
        token = TokenIssuer(other).issue_refresh_token(1)

        assert TokenIssuer(cfg).verify_refresh_token(
            TokenIssuer(cfg).issue_refresh_token(1)
        ).user_id == 1
        with pytest.raises(InvalidTokenError):
            TokenIssuer(cfg).verify_refresh_token(token)
