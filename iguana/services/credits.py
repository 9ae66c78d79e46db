"""Credit ledger: purchases, balance reads, spending and grant reconciliation."""

import uuid
from datetime import datetime, timedelta
from typing import NamedTuple

from iguana.core.catalog import get_model
from iguana.core.config import Settings, get_settings
from iguana.core.exceptions import (
    AppError,
    BadRequestError,
    InsufficientCreditsError,
    NotFoundError,
    ProfileUpdateError,
    StoreReadError,
    StoreWriteError,
    TransactionCreateError,
    ValidationError,
)
from iguana.core.logging import get_logger
from iguana.models.transaction import Transaction
from iguana.services.ledger_store import DuplicatePurchaseDetected, LedgerStore

log = get_logger(__name__)


class PurchaseResult(NamedTuple):
    transaction: Transaction
    new_credit_balance: int
    already_processed: bool = False


class CreditLedger:
    def __init__(self, store: LedgerStore, settings: Settings | None = None):
        self.store = store
        self.settings = settings or get_settings()

    async def fetch_balance(self, user_id: str) -> int:
        profile = await self.store.get_profile(user_id)
        if profile is None:
            raise NotFoundError("User profile not found")
        return profile.credits

    async def fetch_history(self, user_id: str) -> list[Transaction]:
        """All transactions for the user, newest first."""
        return await self.store.list_transactions(user_id)

    async def record_purchase(
        self,
        user_id: str,
        amount: float,
        credits: int,
        payment_intent: str | None = None,
    ) -> PurchaseResult:
        """
        Record a purchase and grant its credits.

        The transaction is inserted as pending, the grant is applied with one
        atomic increment, then the transaction is marked completed. A repeat
        call with the same payment intent (including an explicit "cash")
        returns the existing transaction with already_processed set. When the
        intent is omitted it is stored as "cash" under a fresh key, so every
        such purchase is recorded.
        """
        if amount < 0 or credits < 0:
            raise ValidationError("Amount and credits must not be negative")
        explicit = bool(payment_intent)
        intent = payment_intent or self.settings.default_payment_intent
        idempotency_key = intent if explicit else f"{intent}_{uuid.uuid4().hex}"

        if await self.store.get_profile(user_id) is None:
            raise NotFoundError("User profile not found")

        if explicit:
            try:
                existing = await self.store.find_transaction(user_id, idempotency_key)
            except StoreReadError as e:
                # Unique index still guards the insert below
                log.warning("idempotency_lookup_failed", user_id=user_id, payment_intent=intent, error=str(e))
                existing = None
            if existing is not None:
                return await self._replay(existing)

        tx = Transaction(
            user_id=user_id,
            amount=amount,
            credits=credits,
            status="pending",
            payment_intent=intent,
            idempotency_key=idempotency_key,
        )
        try:
            tx = await self.store.insert_transaction(tx)
        except DuplicatePurchaseDetected:
            log.info("duplicate_purchase_detected", user_id=user_id, payment_intent=intent)
            existing = await self.store.find_transaction(user_id, idempotency_key)
            if existing is None:
                raise TransactionCreateError("Duplicate key reported but no transaction found")
            return await self._replay(existing)
        log.info("transaction_created", user_id=user_id, transaction_id=str(tx.id), credits=credits, amount=amount)

        balance = await self._grant(tx)
        return PurchaseResult(tx, balance)

    async def _replay(self, existing: Transaction) -> PurchaseResult:
        log.info(
            "transaction_already_processed",
            user_id=existing.user_id,
            transaction_id=str(existing.id),
            status=existing.status,
        )
        if existing.status == "failed":
            claimed = await self.store.set_transaction_status(existing.id, "pending", expected=("failed",))
            if claimed is not None:
                balance = await self._grant(claimed)
                return PurchaseResult(claimed, balance, True)
        balance = await self.fetch_balance(existing.user_id)
        return PurchaseResult(existing, balance, True)

    async def _grant(self, tx: Transaction) -> int:
        """Apply tx.credits to the owner's balance and complete tx. Returns the new balance."""
        tx_id = str(tx.id)
        try:
            profile = await self.store.apply_grant(tx.user_id, tx_id, tx.credits)
        except ProfileUpdateError:
            await self._mark_failed(tx)
            raise
        if profile is None:
            profile = await self.store.get_profile(tx.user_id)
            if profile is None:
                await self._mark_failed(tx)
                raise NotFoundError("User profile not found")
            if tx_id not in profile.applied_transactions:
                await self._mark_failed(tx)
                raise ProfileUpdateError("Credit grant was not applied")
        await self.store.record_event(
            tx.user_id,
            "credits_purchased",
            tx.credits,
            transaction_id=tx_id,
            details={"amount": tx.amount, "payment_intent": tx.payment_intent},
        )
        try:
            completed = await self.store.set_transaction_status(tx.id, "completed", expected=("pending", "failed"))
        except StoreWriteError as e:
            # Grant is in; reconciliation completes the transaction later
            log.warning("transaction_complete_failed", transaction_id=tx_id, error=str(e))
            completed = None
        if completed is not None:
            tx.status = completed.status
            tx.updated_at = completed.updated_at
            await self.store.release_grant_marker(tx.user_id, tx_id)
        log.info("credits_granted", user_id=tx.user_id, transaction_id=tx_id, balance=profile.credits)
        return profile.credits

    async def _mark_failed(self, tx: Transaction) -> None:
        try:
            await self.store.set_transaction_status(tx.id, "failed", expected=("pending",))
        except StoreWriteError as e:
            log.warning("transaction_mark_failed_error", transaction_id=str(tx.id), error=str(e))
        tx.status = "failed"
        log.error("credit_grant_failed", user_id=tx.user_id, transaction_id=str(tx.id), credits=tx.credits)

    async def spend_credits(self, user_id: str, model_id: str, count: int = 1) -> int:
        """Charge the model's credit cost times count. Returns the balance after the charge."""
        if count < 1:
            raise BadRequestError("Image count must be at least 1")
        model = get_model(model_id)
        cost = model.credit_cost * count
        profile = await self.store.debit(user_id, cost)
        if profile is None:
            current = await self.store.get_profile(user_id)
            if current is None:
                raise NotFoundError("User profile not found")
            raise InsufficientCreditsError(required=cost, available=current.credits)
        log.info("credits_spent", user_id=user_id, model=model_id, cost=cost, balance=profile.credits)
        await self.store.record_event(
            user_id, "credits_spent", -cost, details={"model": model_id, "count": count, "cost": cost}
        )
        return profile.credits

    async def audit_balance(self, user_id: str) -> dict:
        """Compare the stored balance with the sum of the credit event trail."""
        credits = await self.fetch_balance(user_id)
        trail_total = await self.store.event_total(user_id)
        if credits != trail_total:
            log.warning("balance_trail_mismatch", user_id=user_id, credits=credits, trail_total=trail_total)
        return {"credits": credits, "trail_total": trail_total, "consistent": credits == trail_total}

    async def reconcile_grants(self, older_than: timedelta | None = None) -> int:
        """Finish transactions stuck in pending or failed. Returns how many were completed."""
        if older_than is None:
            older_than = timedelta(seconds=self.settings.reconcile_after_seconds)
        cutoff = datetime.utcnow() - older_than
        stale = await self.store.stale_transactions(cutoff)
        reconciled = 0
        for tx in stale:
            try:
                # Claim: another reconciler or a retry may be on the same transaction
                claimed = await self.store.set_transaction_status(
                    tx.id, "pending", expected=(tx.status,), updated_at=tx.updated_at
                )
                if claimed is None:
                    continue
                await self._grant(claimed)
            except AppError as e:
                log.warning("reconcile_failed", transaction_id=str(tx.id), error=e.message, **e.details)
                continue
            reconciled += 1
        if stale:
            log.info("reconcile_done", candidates=len(stale), reconciled=reconciled)
        return reconciled
