import pytest

from iguana.core.exceptions import ProfileUpdateError, StoreReadError
from iguana.models.transaction import Transaction

pytestmark = pytest.mark.asyncio


async def test_record_purchase(client, make_profile):
    await make_profile("u1", credits=16)
    r = await client.post(
        "/transactions",
        json={"userId": "u1", "amount": 12, "credits": 150, "paymentIntent": "pay_1"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["data"]["newCreditBalance"] == 166
    assert "alreadyProcessed" not in body["data"]
    tx = body["data"]["transaction"]
    assert tx["user_id"] == "u1"
    assert tx["credits"] == 150
    assert tx["amount"] == 12
    assert tx["status"] == "completed"
    assert tx["payment_intent"] == "pay_1"
    assert tx["id"] and tx["created_at"]


async def test_repeat_purchase_reports_already_processed(client, make_profile):
    await make_profile("u1", credits=16)
    payload = {"userId": "u1", "amount": 12, "credits": 150, "paymentIntent": "pay_1"}
    first = await client.post("/transactions", json=payload)
    second = await client.post("/transactions", json=payload)
    assert second.status_code == 200
    data = second.json()["data"]
    assert data["alreadyProcessed"] is True
    assert data["newCreditBalance"] == 166
    assert data["transaction"]["id"] == first.json()["data"]["transaction"]["id"]


async def test_payment_intent_defaults_to_cash(client, make_profile):
    await make_profile("u1", credits=16)
    r = await client.post("/transactions", json={"userId": "u1", "amount": 5, "credits": 50})
    assert r.status_code == 200
    assert r.json()["data"]["transaction"]["payment_intent"] == "cash"


async def test_repeated_explicit_cash_intent_is_recorded_once(client, make_profile):
    await make_profile("u1", credits=16)
    payload = {"userId": "u1", "amount": 5, "credits": 50, "paymentIntent": "cash"}
    first = await client.post("/transactions", json=payload)
    second = await client.post("/transactions", json=payload)
    assert "alreadyProcessed" not in first.json()["data"]
    assert second.json()["data"]["alreadyProcessed"] is True
    assert second.json()["data"]["newCreditBalance"] == 66
    history = (await client.get("/transactions", params={"userId": "u1"})).json()["data"]
    assert len(history) == 1


@pytest.mark.parametrize(
    "payload",
    [
        {"amount": 12, "credits": 150},
        {"userId": "", "amount": 12, "credits": 150},
        {"userId": "u1", "credits": 150},
        {"userId": "u1", "amount": 12},
    ],
)
async def test_missing_fields(client, make_profile, payload):
    await make_profile("u1", credits=16)
    r = await client.post("/transactions", json=payload)
    assert r.status_code == 400
    assert r.json()["success"] is False
    assert r.json()["error"] == "Missing required fields"
    assert await Transaction.find_all().count() == 0
    assert (await client.get("/profiles/u1/credits")).json()["data"]["credits"] == 16


async def test_malformed_body_is_400(client):
    r = await client.post("/transactions", json={"userId": "u1", "amount": "lots", "credits": 1})
    assert r.status_code == 400
    assert r.json()["code"] == "VALIDATION_ERROR"


async def test_unknown_user_is_404(client, db):
    r = await client.post("/transactions", json={"userId": "ghost", "amount": 1, "credits": 1})
    assert r.status_code == 404
    assert r.json()["success"] is False


async def test_store_failure_is_500_with_message(client, ledger, make_profile, monkeypatch):
    await make_profile("u1", credits=16)

    async def failing_grant(user_id, tx_id, credits):
        raise ProfileUpdateError("connection reset")

    monkeypatch.setattr(ledger.store, "apply_grant", failing_grant)
    r = await client.post(
        "/transactions",
        json={"userId": "u1", "amount": 12, "credits": 150, "paymentIntent": "pay_1"},
    )
    assert r.status_code == 500
    body = r.json()
    assert body == {
        "success": False,
        "error": "Failed to update user credits",
        "code": "PROFILE_UPDATE_ERROR",
        "details": {"reason": "connection reset"},
        "request_id": r.headers["X-Request-ID"],
    }
    history = (await client.get("/transactions", params={"userId": "u1"})).json()["data"]
    assert [t["status"] for t in history] == ["failed"]


async def test_history(client, make_profile):
    await make_profile("u1", credits=0)
    for i in range(3):
        await client.post(
            "/transactions",
            json={"userId": "u1", "amount": 5, "credits": 50, "paymentIntent": f"pay_{i}"},
        )
    r = await client.get("/transactions", params={"userId": "u1"})
    assert r.status_code == 200
    data = r.json()["data"]
    assert [t["payment_intent"] for t in data] == ["pay_2", "pay_1", "pay_0"]


async def test_history_requires_user_id(client):
    r = await client.get("/transactions")
    assert r.status_code == 400
    assert r.json()["error"] == "User ID is required"


async def test_history_store_failure(client, ledger, monkeypatch):
    async def failing_list(user_id):
        raise StoreReadError("Failed to fetch transactions", "timeout")

    monkeypatch.setattr(ledger.store, "list_transactions", failing_list)
    r = await client.get("/transactions", params={"userId": "u1"})
    assert r.status_code == 500
    assert r.json()["error"] == "Failed to fetch transactions"
