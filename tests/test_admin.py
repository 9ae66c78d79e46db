import pytest
from pymongo.errors import ServerSelectionTimeoutError

pytestmark = pytest.mark.asyncio

ADMIN = {"X-Admin-Key": "test-admin-key"}


class FakeDatabase:
    def __init__(self, error=None):
        self.error = error
        self.commands = []

    async def command(self, name):
        self.commands.append(name)
        if self.error:
            raise self.error
        return {"ok": 1}


async def test_admin_requires_key(client):
    assert (await client.get("/admin/check-connection")).status_code == 403
    r = await client.get("/admin/check-connection", headers={"X-Admin-Key": "wrong"})
    assert r.status_code == 403
    assert r.json()["error"] == "Admin only"


async def test_check_connection(client):
    from iguana.main import app
    app.state.database = FakeDatabase()
    r = await client.get("/admin/check-connection", headers=ADMIN)
    assert r.json() == {"success": True, "message": "Connection successful"}
    assert app.state.database.commands == ["ping"]


async def test_check_connection_unreachable(client):
    from iguana.main import app
    app.state.database = FakeDatabase(ServerSelectionTimeoutError("no servers"))
    r = await client.get("/admin/check-connection", headers=ADMIN)
    assert r.json()["success"] is False
    assert "no servers" in r.json()["message"]


async def test_reconcile_endpoint(client, make_profile):
    from iguana.models.transaction import Transaction
    await make_profile("u1", credits=16)
    await Transaction(
        user_id="u1", amount=12, credits=150, status="failed", payment_intent="pay_1", idempotency_key="pay_1"
    ).insert()
    r = await client.post("/admin/reconcile", params={"older_than_seconds": 3600}, headers=ADMIN)
    assert r.json()["data"]["reconciled"] == 0
    r = await client.post("/admin/reconcile", headers=ADMIN)
    assert r.status_code == 200
    assert r.json()["data"]["reconciled"] == 1
    r = await client.get("/profiles/u1/credits")
    assert r.json()["data"]["credits"] == 166


async def test_balance_audit(client, db):
    await client.post("/profiles", json={"id": "u1"})
    await client.post("/transactions", json={"userId": "u1", "amount": 5, "credits": 50, "paymentIntent": "pay_1"})
    await client.post("/credits/spend", json={"userId": "u1", "model": "iguana-fast"})
    r = await client.get("/admin/balance-audit/u1", headers=ADMIN)
    assert r.status_code == 200
    assert r.json()["data"] == {"credits": 62, "trail_total": 62, "consistent": True}
    assert (await client.get("/admin/balance-audit/ghost", headers=ADMIN)).status_code == 404
