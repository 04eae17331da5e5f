"""FastAPI dependencies for the admin context and loyalty policy."""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from .config import LoyaltyPolicy, settings
from .exceptions import AuthenticationError


@dataclass(frozen=True)
class AdminContext:
    """Authenticated admin session handed to admin-only handlers."""

    session_id: Optional[str]
    authenticated: bool = True


async def get_admin_context(request: Request) -> AdminContext:
    """
    Build the admin context from the session cookie.

    Args:
        request: Incoming request

    Returns:
        AdminContext: Context for the current admin session

    Raises:
        AuthenticationError: If the session cookie is missing
    """
    session_id = request.cookies.get(settings.admin_session_cookie)

    if not session_id:
        if settings.require_admin_session:
            raise AuthenticationError()
        return AdminContext(session_id=None, authenticated=False)

    return AdminContext(session_id=session_id)


def get_loyalty_policy() -> LoyaltyPolicy:
    """Return the loyalty policy currently configured."""
    return settings.loyalty

