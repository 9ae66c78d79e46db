from datetime import timedelta

from fastapi import APIRouter, Depends, Query, Request

from iguana.db.init import check_connection
from iguana.deps import get_ledger, require_admin
from iguana.services.credits import CreditLedger

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/check-connection")
async def admin_check_connection(request: Request):
    """Admin: ping the store."""
    return await check_connection(request.app.state.database)


@router.post("/reconcile")
async def admin_reconcile(
    older_than_seconds: int = Query(0, ge=0),
    ledger: CreditLedger = Depends(get_ledger),
):
    """Admin: finish pending/failed credit grants now instead of waiting for the worker."""
    reconciled = await ledger.reconcile_grants(timedelta(seconds=older_than_seconds))
    return {"success": True, "data": {"reconciled": reconciled}}


@router.get("/balance-audit/{user_id}")
async def admin_balance_audit(user_id: str, ledger: CreditLedger = Depends(get_ledger)):
    """Admin: check a user's balance against their credit event trail."""
    return {"success": True, "data": await ledger.audit_balance(user_id)}
