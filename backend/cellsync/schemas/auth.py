"""
CellSync Backend — Authenticated User Schema
==============================================

What:  The identity attached to a request once its bearer token has been
       verified by the auth provider.
How:   The provider's free-form ``user_metadata.role`` string is parsed into
       the Role enumeration here, at the authentication boundary, so call
       sites compare against Role members instead of raw strings.
"""

from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel

from cellsync.exceptions import AuthenticationError


class Role(str, Enum):
    """Account-level role. Accounts without role metadata are FREE."""
    FREE = "free"
    ADMIN = "admin"

    @classmethod
    def from_metadata(cls, value: Optional[Any]) -> "Role":
        """
        Parse a provider role value.

        Missing or empty → FREE. Unrecognised strings raise
        AuthenticationError rather than being silently downgraded.
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return cls.FREE
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise AuthenticationError(
                message="Account role is not recognised",
                context={"role": str(value)},
            )


class AuthenticatedUser(BaseModel):
    id: str
    email: str
    role: Role = Role.FREE

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @classmethod
    def from_provider(cls, payload: Mapping[str, Any]) -> "AuthenticatedUser":
        """Build from the auth provider's GET /auth/v1/user response body."""
        user_id = payload.get("id")
        if not user_id:
            raise AuthenticationError(message="Invalid or expired token")
        metadata = payload.get("user_metadata") or {}
        return cls(
            id=str(user_id),
            email=payload.get("email") or "",
            role=Role.from_metadata(metadata.get("role")),
        )
