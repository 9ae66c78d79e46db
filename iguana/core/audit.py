"""Credit event trail, written next to every balance change."""

from typing import Any

from iguana.models.credit_event import CreditEvent, CreditEventType


async def record_credit_event(
    user_id: str,
    event_type: CreditEventType,
    delta: int,
    transaction_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> CreditEvent:
    """Append an event. A purchase is recorded once per transaction."""
    if transaction_id is not None:
        existing = await CreditEvent.find_one(
            CreditEvent.transaction_id == transaction_id,
            CreditEvent.event_type == event_type,
        )
        if existing is not None:
            return existing
    event = CreditEvent(
        user_id=user_id,
        event_type=event_type,
        delta=delta,
        transaction_id=transaction_id,
        details=details or {},
    )
    await event.insert()
    return event


async def credit_event_total(user_id: str) -> int:
    """Balance as reconstructed from the trail."""
    events = await CreditEvent.find(CreditEvent.user_id == user_id).to_list()
    return sum(e.delta for e in events)
