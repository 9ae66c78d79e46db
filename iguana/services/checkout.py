"""Mock checkout: signed session ids stand in for a payment provider's sessions.

Completing a session records the purchase with the session id as the payment
intent, so reloading the success page never grants credits twice.
"""

from urllib.parse import urlencode

from iguana.core.catalog import get_package
from iguana.core.config import get_settings
from iguana.core.exceptions import NotFoundError
from iguana.core.logging import get_logger
from iguana.core.security import create_checkout_session_id, load_checkout_session_id
from iguana.services.credits import CreditLedger, PurchaseResult

log = get_logger(__name__)


async def create_session(ledger: CreditLedger, user_id: str, package_id: str) -> dict:
    package = get_package(package_id)
    if await ledger.store.get_profile(user_id) is None:
        raise NotFoundError("User profile not found")
    session_id = create_checkout_session_id({"user_id": user_id, "package_id": package.id})
    settings = get_settings()
    url = f"{settings.site_url.rstrip('/')}/checkout/success?{urlencode({'session_id': session_id})}"
    log.info("checkout_session_created", user_id=user_id, package_id=package.id)
    return {"session_id": session_id, "url": url, "package": package.model_dump()}


async def complete_session(ledger: CreditLedger, session_id: str) -> PurchaseResult:
    payload = load_checkout_session_id(session_id)
    package = get_package(payload["package_id"])
    return await ledger.record_purchase(
        payload["user_id"],
        amount=package.price,
        credits=package.credits,
        payment_intent=session_id,
    )
