from datetime import datetime
from typing import Literal

import pymongo
from beanie import Document
from pydantic import Field
from pymongo import IndexModel

TransactionStatus = Literal["pending", "completed", "failed"]


class Transaction(Document):
    user_id: str
    amount: float
    credits: int
    status: TransactionStatus = "pending"
    payment_intent: str | None = None
    idempotency_key: str  # payment_intent, or a generated key for cash purchases
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "transactions"
        indexes = [
            IndexModel(
                [("user_id", pymongo.ASCENDING), ("idempotency_key", pymongo.ASCENDING)],
                name="user_idempotency_key_unique",
                unique=True,
            ),
            [("user_id", 1), ("created_at", -1)],
            [("status", 1), ("updated_at", 1)],
        ]

    def to_public(self) -> dict:
        return {
            "id": str(self.id),
            "user_id": self.user_id,
            "amount": self.amount,
            "credits": self.credits,
            "status": self.status,
            "payment_intent": self.payment_intent,
            "created_at": self.created_at.isoformat(),
        }
