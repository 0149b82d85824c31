"""
OIDC service tests: discovery, authorize URL, code exchange and id_token
verification against a locally generated RSA key.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlparse

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from surveys.services import oidc_service
from surveys.services.oidc_service import OIDCError

METADATA = {
    "authorization_endpoint": "https://idp.test/authorize",
    "token_endpoint": "https://idp.test/token",
    "jwks_uri": "https://idp.test/keys",
}


def _ok(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    resp.raise_for_status.return_value = None
    return resp


@pytest.fixture(scope="module")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _id_token(key, **overrides):
    now = datetime.now(timezone.utc)
    claims = {
        "iss": "https://login.microsoftonline.com/tenant-a/v2.0",
        "aud": "test-client",
        "oid": "oid-1",
        "nonce": "n-1",
        "iat": now,
        "exp": now + timedelta(minutes=5),
    }
    claims.update(overrides)
    return jwt.encode(claims, key, algorithm="RS256")


@pytest.fixture()
def jwks(rsa_key):
    with patch("surveys.services.oidc_service.jwt.PyJWKClient") as mock_cls:
        mock_cls.return_value.get_signing_key_from_jwt.return_value = MagicMock(key=rsa_key.public_key())
        yield mock_cls


class TestDiscovery:
    @patch("surveys.services.oidc_service.httpx.get")
    def test_discovery_url(self, mock_get, app):
        mock_get.return_value = _ok(METADATA)
        assert oidc_service.get_metadata() == METADATA
        assert mock_get.call_args.args[0] == (
            "https://login.microsoftonline.com/common/v2.0/.well-known/openid-configuration"
        )

    @patch("surveys.services.oidc_service.httpx.get")
    def test_discovery_failure(self, mock_get):
        mock_get.side_effect = httpx.ConnectError("down")
        with pytest.raises(OIDCError):
            oidc_service.get_metadata()

    @patch("surveys.services.oidc_service.httpx.get")
    def test_authorize_url(self, mock_get, app):
        mock_get.return_value = _ok(METADATA)
        app.config["OIDC_API_SCOPE"] = "api://surveys/.default"
        try:
            url, state, nonce = oidc_service.build_authorize_url("http://web.test/account/callback")
        finally:
            app.config["OIDC_API_SCOPE"] = ""
        query = parse_qs(urlparse(url).query)
        assert query["state"] == [state]
        assert query["nonce"] == [nonce]
        assert query["response_type"] == ["code"]
        assert query["scope"][0].split()[-1] == "api://surveys/.default"


class TestCodeExchange:
    @patch("surveys.services.oidc_service.httpx.post")
    @patch("surveys.services.oidc_service.httpx.get")
    def test_exchange(self, mock_get, mock_post):
        mock_get.return_value = _ok(METADATA)
        mock_post.return_value = _ok({"id_token": "x", "access_token": "y"})
        assert oidc_service.exchange_code("c", "http://cb")["id_token"] == "x"
        data = mock_post.call_args.kwargs["data"]
        assert data["grant_type"] == "authorization_code"
        assert data["client_secret"] == "test-client-secret"

    @patch("surveys.services.oidc_service.httpx.post")
    @patch("surveys.services.oidc_service.httpx.get")
    def test_exchange_without_id_token(self, mock_get, mock_post):
        mock_get.return_value = _ok(METADATA)
        mock_post.return_value = _ok({"access_token": "y"})
        with pytest.raises(OIDCError):
            oidc_service.exchange_code("c", "http://cb")


class TestIdToken:
    def test_valid(self, rsa_key, jwks):
        claims = oidc_service.decode_id_token(_id_token(rsa_key), "n-1", metadata=METADATA)
        assert claims["oid"] == "oid-1"
        jwks.assert_called_once_with("https://idp.test/keys")

    def test_nonce_mismatch(self, rsa_key, jwks):
        with pytest.raises(OIDCError, match="nonce"):
            oidc_service.decode_id_token(_id_token(rsa_key), "other", metadata=METADATA)

    def test_wrong_audience(self, rsa_key, jwks):
        with pytest.raises(OIDCError):
            oidc_service.decode_id_token(_id_token(rsa_key, aud="someone-else"), "n-1", metadata=METADATA)

    def test_expired(self, rsa_key, jwks):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        with pytest.raises(OIDCError):
            oidc_service.decode_id_token(_id_token(rsa_key, exp=past), "n-1", metadata=METADATA)
