"""Store access for profiles and transactions.

Every driver failure is translated into a StoreReadError/StoreWriteError
subclass here, so callers never see pymongo exceptions. Balance changes are
single atomic updates on the profile document.
"""

from datetime import datetime
from typing import Iterable

import pymongo
from beanie import PydanticObjectId, UpdateResponse
from beanie.operators import In, Inc, Pull, Push, Set
from pymongo.errors import DuplicateKeyError, PyMongoError

from iguana.core.audit import credit_event_total, record_credit_event
from iguana.core.exceptions import (
    ProfileReadError,
    ProfileUpdateError,
    StoreReadError,
    StoreWriteError,
    TransactionCreateError,
)
from iguana.core.logging import get_logger
from iguana.models.credit_event import CreditEventType
from iguana.models.profile import Profile
from iguana.models.transaction import Transaction, TransactionStatus

log = get_logger(__name__)


class DuplicatePurchaseDetected(Exception):
    """Insert hit the (user_id, idempotency_key) unique index."""

    def __init__(self, user_id: str, idempotency_key: str):
        self.user_id = user_id
        self.idempotency_key = idempotency_key
        super().__init__(f"Transaction already exists for {user_id}/{idempotency_key}")


class LedgerStore:
    async def get_profile(self, user_id: str) -> Profile | None:
        try:
            return await Profile.get(user_id)
        except PyMongoError as e:
            raise ProfileReadError(str(e)) from e

    async def find_transaction(self, user_id: str, idempotency_key: str) -> Transaction | None:
        try:
            return await Transaction.find_one(
                Transaction.user_id == user_id,
                Transaction.idempotency_key == idempotency_key,
            )
        except PyMongoError as e:
            raise StoreReadError("Failed to look up transaction", str(e)) from e

    async def insert_transaction(self, tx: Transaction) -> Transaction:
        try:
            await tx.insert()
        except DuplicateKeyError as e:
            raise DuplicatePurchaseDetected(tx.user_id, tx.idempotency_key) from e
        except PyMongoError as e:
            raise TransactionCreateError(str(e)) from e
        return tx

    async def set_transaction_status(
        self,
        tx_id: PydanticObjectId,
        status: TransactionStatus,
        expected: Iterable[TransactionStatus],
        updated_at: datetime | None = None,
    ) -> Transaction | None:
        """Compare-and-set the status; None when the current status is not in expected.

        With updated_at, the document must also be unchanged since that time.
        """
        query = [Transaction.id == tx_id, In(Transaction.status, list(expected))]
        if updated_at is not None:
            query.append(Transaction.updated_at == updated_at)
        try:
            return await Transaction.find_one(*query).update(
                Set({Transaction.status: status, Transaction.updated_at: datetime.utcnow()}),
                response_type=UpdateResponse.NEW_DOCUMENT,
            )
        except PyMongoError as e:
            raise StoreWriteError("Failed to update transaction", str(e)) from e

    async def apply_grant(self, user_id: str, tx_id: str, credits: int) -> Profile | None:
        """Add credits once per transaction id.

        Returns the updated profile, or None when the profile is missing or
        the transaction was already applied.
        """
        try:
            return await Profile.find_one(
                Profile.id == user_id,
                {"applied_transactions": {"$ne": tx_id}},
            ).update(
                Inc({Profile.credits: credits}),
                Push({Profile.applied_transactions: tx_id}),
                Set({Profile.updated_at: datetime.utcnow()}),
                response_type=UpdateResponse.NEW_DOCUMENT,
            )
        except PyMongoError as e:
            raise ProfileUpdateError(str(e)) from e

    async def release_grant_marker(self, user_id: str, tx_id: str) -> None:
        """Drop a completed transaction from the profile's applied list."""
        try:
            await Profile.find_one(Profile.id == user_id).update(Pull({Profile.applied_transactions: tx_id}))
        except PyMongoError as e:
            log.warning("grant_marker_release_failed", user_id=user_id, transaction_id=tx_id, error=str(e))

    async def debit(self, user_id: str, cost: int) -> Profile | None:
        """Subtract cost if the balance covers it; None otherwise (or if no profile)."""
        try:
            return await Profile.find_one(
                Profile.id == user_id,
                Profile.credits >= cost,
            ).update(
                Inc({Profile.credits: -cost}),
                Set({Profile.updated_at: datetime.utcnow()}),
                response_type=UpdateResponse.NEW_DOCUMENT,
            )
        except PyMongoError as e:
            raise ProfileUpdateError(str(e)) from e

    async def list_transactions(self, user_id: str) -> list[Transaction]:
        try:
            return (
                await Transaction.find(Transaction.user_id == user_id)
                .sort([("created_at", pymongo.DESCENDING), ("_id", pymongo.DESCENDING)])
                .to_list()
            )
        except PyMongoError as e:
            raise StoreReadError("Failed to fetch transactions", str(e)) from e

    async def stale_transactions(self, updated_before: datetime, limit: int = 100) -> list[Transaction]:
        """Transactions left pending or failed since before the cutoff, oldest first."""
        try:
            return (
                await Transaction.find(
                    In(Transaction.status, ["pending", "failed"]),
                    Transaction.updated_at < updated_before,
                )
                .sort([("updated_at", pymongo.ASCENDING)])
                .limit(limit)
                .to_list()
            )
        except PyMongoError as e:
            raise StoreReadError("Failed to fetch stale transactions", str(e)) from e

    async def event_total(self, user_id: str) -> int:
        try:
            return await credit_event_total(user_id)
        except PyMongoError as e:
            raise StoreReadError("Failed to fetch credit events", str(e)) from e

    async def record_event(
        self,
        user_id: str,
        event_type: CreditEventType,
        delta: int,
        transaction_id: str | None = None,
        details: dict | None = None,
    ) -> None:
        """Trail entry for a balance change. Failures are logged, the balance write already happened."""
        try:
            await record_credit_event(user_id, event_type, delta, transaction_id, details)
        except PyMongoError as e:
            log.warning("credit_event_write_failed", user_id=user_id, event_type=event_type, error=str(e))
