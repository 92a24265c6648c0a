"""
CellSync Backend — Auth Service Unit Tests
============================================

What:  Token verification against a mocked auth provider.
How:   httpx.MockTransport stands in for the provider; no network traffic.

What we test:
    ✅ 200 → AuthenticatedUser with role parsed from user_metadata
    ✅ Provider 401 → AuthenticationError
    ✅ Provider 5xx / connection error / bad body → AuthProviderUnavailable
    ✅ Empty token is rejected without contacting the provider
    ✅ Unknown role is rejected
"""

import httpx
import pytest

from cellsync.exceptions import AuthenticationError, AuthProviderUnavailable
from cellsync.schemas.auth import Role
from cellsync.services.auth_service import AuthService


def make_service(handler) -> AuthService:
    return AuthService(
        base_url="http://auth.test/",
        api_key="anon-key",
        timeout=5.0,
        transport=httpx.MockTransport(handler),
    )


class TestVerifyTokenSuccess:

    @pytest.mark.asyncio
    async def test_sends_key_and_bearer_to_user_endpoint(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["apikey"] = request.headers.get("apikey")
            seen["authorization"] = request.headers.get("authorization")
            return httpx.Response(200, json={"id": "u-1", "email": "a@example.com"})

        user = await make_service(handler).verify_token("tok-123")

        assert seen == {
            "url": "http://auth.test/auth/v1/user",
            "apikey": "anon-key",
            "authorization": "Bearer tok-123",
        }
        assert user.id == "u-1"
        assert user.email == "a@example.com"
        assert user.role is Role.FREE
        assert not user.is_admin

    @pytest.mark.asyncio
    async def test_admin_role_from_metadata(self):
        def handler(request):
            return httpx.Response(
                200,
                json={"id": "u-2", "email": "root@example.com", "user_metadata": {"role": "Admin"}},
            )

        user = await make_service(handler).verify_token("tok")

        assert user.role is Role.ADMIN
        assert user.is_admin


class TestVerifyTokenFailures:

    @pytest.mark.asyncio
    async def test_rejected_token(self):
        service = make_service(lambda request: httpx.Response(401, json={"msg": "bad jwt"}))
        with pytest.raises(AuthenticationError):
            await service.verify_token("expired")

    @pytest.mark.asyncio
    async def test_provider_server_error(self):
        service = make_service(lambda request: httpx.Response(502, text="bad gateway"))
        with pytest.raises(AuthProviderUnavailable) as exc_info:
            await service.verify_token("tok")
        assert exc_info.value.context["status_code"] == 502

    @pytest.mark.asyncio
    async def test_provider_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(AuthProviderUnavailable):
            await make_service(handler).verify_token("tok")

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        service = make_service(lambda request: httpx.Response(200, text="<html></html>"))
        with pytest.raises(AuthProviderUnavailable):
            await service.verify_token("tok")

    @pytest.mark.asyncio
    async def test_empty_token_skips_provider(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"id": "u-1"})

        with pytest.raises(AuthenticationError):
            await make_service(handler).verify_token("  ")
        assert calls == []

    @pytest.mark.asyncio
    async def test_unknown_role_is_rejected(self):
        def handler(request):
            return httpx.Response(200, json={"id": "u-3", "user_metadata": {"role": "superuser"}})

        with pytest.raises(AuthenticationError):
            await make_service(handler).verify_token("tok")

    @pytest.mark.asyncio
    async def test_missing_configuration(self):
        service = AuthService(base_url="", api_key="")
        with pytest.raises(AuthProviderUnavailable):
            await service.verify_token("tok")
