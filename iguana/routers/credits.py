from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from iguana.core.catalog import CREDIT_PACKAGES, MODELS
from iguana.deps import get_ledger
from iguana.services.credits import CreditLedger

router = APIRouter()


class SpendCreditsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    model: str
    count: int = Field(default=1, ge=1, le=4)


@router.post("/spend")
async def spend_credits(body: SpendCreditsRequest, ledger: CreditLedger = Depends(get_ledger)):
    """Charge credits for an image generation request before it is sent to the provider."""
    balance = await ledger.spend_credits(body.user_id, body.model, body.count)
    return {"success": True, "data": {"newCreditBalance": balance}}


@router.get("/catalog")
async def catalog():
    """Model tiers with their credit cost, and purchasable credit packages."""
    return {
        "success": True,
        "data": {
            "models": [m.model_dump() for m in MODELS],
            "packages": [p.model_dump() for p in CREDIT_PACKAGES],
        },
    }
