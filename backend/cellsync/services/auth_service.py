"""
CellSync Backend — Auth Provider Client
=========================================

What:  Verifies bearer tokens against the hosted auth provider and returns
       the caller's identity.
How:   GET {SUPABASE_URL}/auth/v1/user with the project API key and the
       caller's token, using a fresh httpx.AsyncClient per call.
Who:   Called by the get_current_user / get_websocket_user dependencies.

Outcome mapping:
    200                      → AuthenticatedUser(id, email, role)
    401 / 403 / other 4xx    → AuthenticationError (401 to the caller)
    5xx / transport error    → AuthProviderUnavailable (503 to the caller)
    missing configuration    → AuthProviderUnavailable

No retries: a failed verification is reported to the caller right away.
"""

import logging
from typing import Optional

import httpx

from cellsync.config import settings
from cellsync.exceptions import AuthenticationError, AuthProviderUnavailable
from cellsync.schemas.auth import AuthenticatedUser

logger = logging.getLogger(__name__)

USER_ENDPOINT = "/auth/v1/user"


class AuthService:
    """
    Token verification client.

    Args:
        base_url / api_key / timeout: Default to the SUPABASE_URL,
            SUPABASE_KEY and AUTH_TIMEOUT settings.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url if base_url is not None else settings.supabase_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.supabase_key
        self.timeout = timeout if timeout is not None else settings.auth_timeout
        self._transport = transport

    async def verify_token(self, token: str) -> AuthenticatedUser:
        """
        Resolve a bearer token to the user it was issued for.

        Raises:
            AuthenticationError: Empty, invalid or expired token, or an
                unrecognised account role.
            AuthProviderUnavailable: Provider unreachable, misconfigured or
                failing.
        """
        if not token or not token.strip():
            raise AuthenticationError(message="Bearer token not provided")

        if not self.base_url:
            logger.error("Auth provider URL is not configured (SUPABASE_URL)")
            raise AuthProviderUnavailable(context={"reason": "not_configured"})

        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {token.strip()}",
        }

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(USER_ENDPOINT, headers=headers)
        except httpx.HTTPError as e:
            logger.error("Auth provider request failed: %s", repr(e))
            raise AuthProviderUnavailable(context={"error_type": type(e).__name__}) from e

        if response.status_code >= 500:
            logger.error("Auth provider returned HTTP %d", response.status_code)
            raise AuthProviderUnavailable(context={"status_code": response.status_code})

        if response.status_code >= 400:
            logger.info("Token rejected by auth provider: HTTP %d", response.status_code)
            raise AuthenticationError(message="Invalid or expired token")

        try:
            payload = response.json()
        except ValueError as e:
            logger.error("Auth provider returned a non-JSON body")
            raise AuthProviderUnavailable(context={"reason": "invalid_body"}) from e

        if not isinstance(payload, dict):
            raise AuthProviderUnavailable(context={"reason": "invalid_body"})

        return AuthenticatedUser.from_provider(payload)


# ── Singleton Instance ────────────────────────────────────────────────────
auth_service = AuthService()
