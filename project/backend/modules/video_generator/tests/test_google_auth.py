"""
Unit tests for the service-account token exchange.
"""

from urllib.parse import parse_qs

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt

from modules.video_generator.google_auth import GoogleTokenProvider, build_assertion
from modules.video_generator.config import CLOUD_PLATFORM_SCOPE, GOOGLE_TOKEN_URL, JWT_BEARER_GRANT_TYPE


@pytest.fixture(scope="module")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def service_account(rsa_key):
    pem = rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    return {
        "client_email": "veo@test-project.iam.gserviceaccount.com",
        "private_key": pem,
        "private_key_id": "key-1",
    }


@pytest.fixture
def public_pem(rsa_key):
    return rsa_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


def test_assertion_claims(service_account, public_pem):
    assertion = build_assertion(service_account, now=1_700_000_000)

    claims = jwt.decode(assertion, public_pem, algorithms=["RS256"], audience=GOOGLE_TOKEN_URL,
                        options={"verify_exp": False, "verify_iat": False})

    assert claims["iss"] == service_account["client_email"]
    assert claims["sub"] == service_account["client_email"]
    assert claims["scope"] == CLOUD_PLATFORM_SCOPE
    assert claims["exp"] - claims["iat"] == 3600
    assert jwt.get_unverified_header(assertion)["kid"] == "key-1"


@pytest.mark.asyncio
async def test_token_exchange_and_cache(service_account):
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"access_token": "ya29.token", "expires_in": 3599})

    now = [1_700_000_000.0]
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        provider = GoogleTokenProvider(service_account, http, clock=lambda: now[0])

        assert await provider.get_token() == "ya29.token"
        assert await provider.get_token() == "ya29.token"
        assert len(requests) == 1

        form = parse_qs(requests[0].content.decode())
        assert form["grant_type"] == [JWT_BEARER_GRANT_TYPE]
        assert form["assertion"][0].count(".") == 2

        # Past the refresh margin a new token is requested
        now[0] += 3599 - 30
        await provider.get_token()
        assert len(requests) == 2


@pytest.mark.asyncio
async def test_token_error_returns_none(service_account):
    async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(400, text="invalid_grant"))) as http:
        provider = GoogleTokenProvider(service_account, http)
        assert await provider.get_token() is None


@pytest.mark.asyncio
async def test_unconfigured_provider_returns_none():
    async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(500))) as http:
        provider = GoogleTokenProvider(None, http)
        assert provider.configured is False
        assert await provider.get_token() is None


@pytest.mark.asyncio
async def test_bad_private_key_returns_none():
    async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(500))) as http:
        provider = GoogleTokenProvider({"client_email": "a@b.c", "private_key": "not a key"}, http)
        assert await provider.get_token() is None
