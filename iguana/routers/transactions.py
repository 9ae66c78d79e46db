from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from iguana.core.exceptions import ValidationError
from iguana.deps import get_ledger
from iguana.services.credits import CreditLedger, PurchaseResult

router = APIRouter()


class RecordPurchaseRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(default=None, alias="userId")
    amount: float | None = None
    credits: int | None = None
    payment_intent: str | None = Field(default=None, alias="paymentIntent")


def purchase_response(result: PurchaseResult) -> dict:
    data = {
        "transaction": result.transaction.to_public(),
        "newCreditBalance": result.new_credit_balance,
    }
    if result.already_processed:
        data["alreadyProcessed"] = True
    return {"success": True, "data": data}


@router.post("")
async def record_purchase(
    body: RecordPurchaseRequest,
    ledger: CreditLedger = Depends(get_ledger),
):
    """Record a credit purchase; repeating a payment intent returns the first result."""
    if not body.user_id or body.amount is None or body.credits is None:
        raise ValidationError("Missing required fields")
    result = await ledger.record_purchase(
        body.user_id,
        amount=body.amount,
        credits=body.credits,
        payment_intent=body.payment_intent,
    )
    return purchase_response(result)


@router.get("")
async def transaction_history(
    user_id: str | None = Query(default=None, alias="userId"),
    ledger: CreditLedger = Depends(get_ledger),
):
    """Return all transactions for a user (newest first)."""
    if not user_id:
        raise ValidationError("User ID is required")
    transactions = await ledger.fetch_history(user_id)
    return {"success": True, "data": [t.to_public() for t in transactions]}
