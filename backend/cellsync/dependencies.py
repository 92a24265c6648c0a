"""
CellSync Backend — Authentication Dependencies
================================================

What:  FastAPI dependencies that resolve the caller's identity.
How:   HTTP routes read the Authorization: Bearer header; the WebSocket
       channel reads a `token` query parameter, since browsers cannot set
       headers on WebSocket upgrades.
Who:   Injected into every /api route via Depends().
"""

from typing import Optional

from fastapi import Depends, Query, WebSocketException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from cellsync.exceptions import AuthenticationError, AuthProviderUnavailable
from cellsync.schemas.auth import AuthenticatedUser
from cellsync.services.auth_service import auth_service

# auto_error=False: a missing header raises our AuthenticationError (401 with
# the standard error payload) instead of FastAPI's bare 403
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthenticatedUser:
    """Verify the request's bearer token and return the user it belongs to."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="Bearer token not provided")
    return await auth_service.verify_token(credentials.credentials)


async def get_websocket_user(
    token: Optional[str] = Query(default=None, description="Bearer token of the subscriber"),
) -> AuthenticatedUser:
    """
    Verify the token passed as ?token= on a WebSocket upgrade.

    Failures close the handshake with 1008 (policy violation); WebSocket
    routes have no JSON error payload to carry them.
    """
    try:
        return await auth_service.verify_token(token or "")
    except (AuthenticationError, AuthProviderUnavailable) as e:
        raise WebSocketException(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
