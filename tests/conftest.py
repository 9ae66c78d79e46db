import os
from typing import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

os.environ.setdefault("MONGODB_DB_NAME", "iguana_test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-min-32-characters-long")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")


@pytest_asyncio.fixture
async def db():
    """In-memory Mongo with document models and indexes initialised."""
    from iguana.db.init import init_db
    database = AsyncMongoMockClient()["iguana_test"]
    await init_db(database)
    return database


@pytest_asyncio.fixture
async def ledger(db):
    from iguana.core.config import get_settings
    from iguana.services.credits import CreditLedger
    from iguana.services.ledger_store import LedgerStore
    return CreditLedger(LedgerStore(), get_settings())


@pytest_asyncio.fixture
async def make_profile(db):
    from iguana.models.profile import Profile

    async def _make(user_id: str = "u1", credits: int = 16) -> Profile:
        profile = Profile(id=user_id, username=f"{user_id}@example.com", credits=credits)
        await profile.insert()
        return profile

    return _make


@pytest_asyncio.fixture
async def client(db, ledger) -> AsyncGenerator[AsyncClient, None]:
    from iguana.main import app
    app.state.database = db
    app.state.ledger = ledger
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
