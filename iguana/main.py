import time
import uuid

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from iguana.core.config import get_settings
from iguana.core.exceptions import (
    AppError,
    app_exception_handler,
    generic_exception_handler,
    validation_exception_handler,
)
from iguana.core.logging import bind_request_id, configure_logging, get_logger
from iguana.db.init import check_connection, init_db
from iguana.routers import admin, checkout, credits, images, profiles, transactions
from iguana.services.credits import CreditLedger
from iguana.services.ledger_store import LedgerStore

settings = get_settings()
configure_logging(debug=settings.debug)
log = get_logger(__name__)

app = FastAPI(
    title="Iguana Studio API",
    version="1.0.0",
    default_response_class=ORJSONResponse,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    bind_request_id(request_id)
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    log.info(
        "request",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(duration_ms, 2),
    )
    response.headers["X-Request-ID"] = request_id
    return response


app.add_exception_handler(AppError, app_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Routers
app.include_router(profiles.router, prefix="/profiles", tags=["profiles"])
app.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
app.include_router(credits.router, prefix="/credits", tags=["credits"])
app.include_router(checkout.router, prefix="/checkout", tags=["checkout"])
app.include_router(images.router, prefix="/images", tags=["images"])
app.include_router(admin.router, prefix="/admin", tags=["admin"])


@app.on_event("startup")
async def startup():
    if settings.sentry_dsn:
        import sentry_sdk
        sentry_sdk.init(dsn=settings.sentry_dsn, environment=settings.env, traces_sample_rate=0.1)
        log.info("startup", msg="Sentry enabled")
    database = await init_db()
    status = await check_connection(database)
    if not status["success"]:
        raise RuntimeError(status["message"])
    app.state.database = database
    app.state.ledger = CreditLedger(LedgerStore(), settings)
    log.info("startup", msg="DB connected", db=settings.mongodb_db_name)


@app.get("/health")
async def health():
    """Health check for load balancers and monitoring."""
    return {"status": "ok"}
