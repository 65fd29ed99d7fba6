"""
Google OAuth2 access tokens from a service-account key.

Signs an RS256 JWT assertion with the service account's private key and
exchanges it for a cloud-platform access token.
"""

import time
from typing import Any, Callable, Dict, Optional

import httpx
from jose import jwt
from jose.exceptions import JOSEError

from shared.logging import get_logger

from .config import (
    CLOUD_PLATFORM_SCOPE,
    GOOGLE_TOKEN_URL,
    JWT_BEARER_GRANT_TYPE,
    TOKEN_LIFETIME_SECONDS,
    TOKEN_REFRESH_MARGIN_SECONDS,
)

logger = get_logger("video_generator.google_auth")


def build_assertion(service_account: Dict[str, Any], now: int) -> str:
    """Build the signed JWT assertion for the token exchange."""
    claims = {
        "iss": service_account["client_email"],
        "sub": service_account["client_email"],
        "aud": GOOGLE_TOKEN_URL,
        "iat": now,
        "exp": now + TOKEN_LIFETIME_SECONDS,
        "scope": CLOUD_PLATFORM_SCOPE,
    }
    headers = {"kid": service_account["private_key_id"]} if service_account.get("private_key_id") else None
    return jwt.encode(claims, service_account["private_key"], algorithm="RS256", headers=headers)


class GoogleTokenProvider:
    """Caches one access token per process until shortly before it expires."""

    def __init__(
        self,
        service_account: Optional[Dict[str, Any]],
        http_client: httpx.AsyncClient,
        clock: Callable[[], float] = time.time
    ):
        self.service_account = service_account
        self.http = http_client
        self.clock = clock
        self._token: Optional[str] = None
        self._expires_at = 0.0

    @property
    def configured(self) -> bool:
        return bool(self.service_account)

    async def get_token(self) -> Optional[str]:
        """
        Return a valid access token, or None if one cannot be obtained.

        Failures are logged and reported as None so callers can skip the
        provider instead of failing.
        """
        if not self.configured:
            return None

        now = self.clock()
        if self._token and now < self._expires_at - TOKEN_REFRESH_MARGIN_SECONDS:
            return self._token

        try:
            assertion = build_assertion(self.service_account, int(now))
        except (JOSEError, KeyError, ValueError) as e:
            logger.error("Failed to sign service account assertion", extra={"error": str(e)})
            return None

        try:
            response = await self.http.post(
                GOOGLE_TOKEN_URL,
                data={"grant_type": JWT_BEARER_GRANT_TYPE, "assertion": assertion},
                timeout=30.0
            )
        except httpx.HTTPError as e:
            logger.error("OAuth2 token request failed", extra={"error": str(e)})
            return None

        if response.status_code != 200:
            logger.error(
                "OAuth2 token error",
                extra={"status_code": response.status_code, "body": response.text[:500]}
            )
            return None

        try:
            data = response.json()
        except ValueError:
            logger.error("OAuth2 token response is not JSON")
            return None

        token = data.get("access_token")
        if not token:
            logger.error("OAuth2 token response has no access_token")
            return None

        self._token = token
        self._expires_at = now + float(data.get("expires_in") or TOKEN_LIFETIME_SECONDS)
        logger.info("Obtained Google access token")
        return token
