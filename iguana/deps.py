"""Shared FastAPI dependencies."""

import hmac

from fastapi import Header, Request

from iguana.core.config import get_settings
from iguana.core.exceptions import ForbiddenError
from iguana.services.credits import CreditLedger


def get_ledger(request: Request) -> CreditLedger:
    """Ledger service built at startup and kept on app.state."""
    return request.app.state.ledger


async def require_admin(x_admin_key: str | None = Header(default=None, alias="X-Admin-Key")) -> None:
    """Dependency: admin endpoints need the configured ADMIN_API_KEY."""
    expected = get_settings().admin_api_key
    if not expected:
        raise ForbiddenError("Admin API not configured")
    if not x_admin_key or not hmac.compare_digest(x_admin_key, expected):
        raise ForbiddenError("Admin only")
