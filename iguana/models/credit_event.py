from datetime import datetime
from typing import Any, Literal

from beanie import Document
from pydantic import Field

CreditEventType = Literal["profile_created", "credits_purchased", "credits_spent"]


class CreditEvent(Document):
    """One change to a user's balance; a user's deltas sum to their credits."""
    user_id: str
    event_type: CreditEventType
    delta: int  # positive = granted, negative = spent
    transaction_id: str | None = None  # purchases only
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "credit_events"
        indexes = [
            [("user_id", 1), ("created_at", -1)],
            "transaction_id",
        ]
