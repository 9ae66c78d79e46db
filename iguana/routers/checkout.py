from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from iguana.deps import get_ledger
from iguana.routers.transactions import purchase_response
from iguana.services import checkout as checkout_service
from iguana.services.credits import CreditLedger

router = APIRouter()


class CreateSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    package_id: str = Field(alias="packageId")


class CompleteSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")


@router.post("/sessions")
async def create_session(body: CreateSessionRequest, ledger: CreditLedger = Depends(get_ledger)):
    """Start checkout for a credit package; the frontend redirects to the returned url."""
    out = await checkout_service.create_session(ledger, body.user_id, body.package_id)
    return {
        "success": True,
        "data": {"sessionId": out["session_id"], "url": out["url"], "package": out["package"]},
    }


@router.post("/complete")
async def complete_session(body: CompleteSessionRequest, ledger: CreditLedger = Depends(get_ledger)):
    """Success-page callback: grant the package credits once per session."""
    result = await checkout_service.complete_session(ledger, body.session_id)
    return purchase_response(result)
