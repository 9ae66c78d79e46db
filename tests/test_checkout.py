from urllib.parse import parse_qs, urlparse

import pytest

pytestmark = pytest.mark.asyncio


async def _start(client, package_id="popular"):
    r = await client.post("/checkout/sessions", json={"userId": "u1", "packageId": package_id})
    assert r.status_code == 200
    return r.json()["data"]


async def test_checkout_grants_package_once(client, make_profile):
    await make_profile("u1", credits=16)
    session = await _start(client)
    assert session["sessionId"].startswith("cs_")
    query = parse_qs(urlparse(session["url"]).query)
    assert query["session_id"] == [session["sessionId"]]
    assert session["package"]["credits"] == 150

    first = await client.post("/checkout/complete", json={"sessionId": session["sessionId"]})
    assert first.status_code == 200
    data = first.json()["data"]
    assert data["newCreditBalance"] == 166
    assert data["transaction"]["amount"] == 12
    assert data["transaction"]["payment_intent"] == session["sessionId"]

    # Success page reloaded
    again = await client.post("/checkout/complete", json={"sessionId": session["sessionId"]})
    assert again.json()["data"]["alreadyProcessed"] is True
    assert again.json()["data"]["newCreditBalance"] == 166


async def test_each_session_is_a_separate_purchase(client, make_profile):
    await make_profile("u1", credits=0)
    for _ in range(2):
        session = await _start(client, "starter")
        await client.post("/checkout/complete", json={"sessionId": session["sessionId"]})
    r = await client.get("/profiles/u1/credits")
    assert r.json()["data"]["credits"] == 100


async def test_tampered_session_rejected(client, make_profile):
    await make_profile("u1", credits=16)
    session = await _start(client)
    r = await client.post("/checkout/complete", json={"sessionId": session["sessionId"] + "x"})
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid checkout session"
    r = await client.post("/checkout/complete", json={"sessionId": "not-a-session"})
    assert r.status_code == 400


async def test_unknown_package(client, make_profile):
    await make_profile("u1", credits=16)
    r = await client.post("/checkout/sessions", json={"userId": "u1", "packageId": "mega"})
    assert r.status_code == 400
    assert r.json()["error"] == "Unknown credit package: mega"


async def test_session_for_unknown_user(client, db):
    r = await client.post("/checkout/sessions", json={"userId": "ghost", "packageId": "starter"})
    assert r.status_code == 404
