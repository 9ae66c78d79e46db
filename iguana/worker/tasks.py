"""ARQ job definitions."""

from typing import Any

from arq.connections import RedisSettings

from iguana.core.config import get_settings
from iguana.core.logging import configure_logging, get_logger
from iguana.db.init import init_db
from iguana.services.credits import CreditLedger
from iguana.services.ledger_store import LedgerStore

log = get_logger(__name__)


def get_redis_settings() -> RedisSettings:
    return RedisSettings.from_dsn(get_settings().redis_url)


async def startup(ctx: dict[str, Any]) -> None:
    settings = get_settings()
    configure_logging(debug=settings.debug)
    await init_db()
    ctx["ledger"] = CreditLedger(LedgerStore(), settings)
    log.info("worker_startup")


async def shutdown(ctx: dict[str, Any]) -> None:
    log.info("worker_shutdown")


async def reconcile_grants(ctx: dict[str, Any]) -> int:
    """Cron: complete credit grants left pending or failed by request handlers."""
    ledger: CreditLedger = ctx["ledger"]
    return await ledger.reconcile_grants()
