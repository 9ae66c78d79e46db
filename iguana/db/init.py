import certifi
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from iguana.core.config import get_settings
from iguana.core.logging import get_logger
from iguana.models.credit_event import CreditEvent
from iguana.models.image import Image
from iguana.models.profile import Profile
from iguana.models.transaction import Transaction

log = get_logger(__name__)

DOCUMENT_MODELS = [
    Profile,
    Transaction,
    Image,
    CreditEvent,
]


def _use_tls(uri: str) -> bool:
    """True if URI uses TLS (Atlas or explicit tls=true). Avoids TLS for plain mongodb:// in CI."""
    return "mongodb+srv://" in uri or "tls=true" in uri.lower()


async def init_db(database: AsyncIOMotorDatabase | None = None) -> AsyncIOMotorDatabase:
    """Bind document models to the database (built from settings unless given) and return it."""
    if database is None:
        settings = get_settings()
        kwargs = {}
        if _use_tls(settings.mongodb_uri):
            kwargs["tlsCAFile"] = certifi.where()
            kwargs["tlsDisableOCSPEndpointCheck"] = True
        client = AsyncIOMotorClient(settings.mongodb_uri, **kwargs)
        database = client[settings.mongodb_db_name]
    await init_beanie(database=database, document_models=DOCUMENT_MODELS)
    return database


async def check_connection(database: AsyncIOMotorDatabase) -> dict:
    """Single capability check against the store: a server ping."""
    try:
        await database.command("ping")
    except PyMongoError as e:
        log.warning("store_unreachable", error=str(e))
        return {"success": False, "message": f"Store unreachable: {e}"}
    return {"success": True, "message": "Connection successful"}
