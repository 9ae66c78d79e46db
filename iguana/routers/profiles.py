from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from iguana.deps import get_ledger
from iguana.services import profiles as profiles_service
from iguana.services.credits import CreditLedger

router = APIRouter()


class CreateProfileRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    username: str | None = None
    full_name: str | None = Field(default=None, alias="fullName")


@router.post("")
async def create_profile(body: CreateProfileRequest):
    """Create the profile for a newly registered user (idempotent)."""
    profile, created = await profiles_service.create_profile(body.id, body.username, body.full_name)
    return {"success": True, "data": profiles_service.profile_to_public(profile), "created": created}


@router.get("/{user_id}")
async def get_profile(user_id: str):
    profile = await profiles_service.get_profile(user_id)
    return {"success": True, "data": profiles_service.profile_to_public(profile)}


@router.get("/{user_id}/credits")
async def get_credits(user_id: str, ledger: CreditLedger = Depends(get_ledger)):
    """Return current credit balance."""
    balance = await ledger.fetch_balance(user_id)
    return {"success": True, "data": {"credits": balance}}
