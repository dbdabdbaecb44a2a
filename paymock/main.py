import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from paymock.config import settings
from paymock.engine.dispatch import MockEngine
from paymock.engine.state import STORE_NAMES
from paymock.models.errors import ApiError
from paymock.routers import api, control

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Startup ---
    logger.info("paymock starting up...")

    engine = MockEngine(settings)
    app.state.engine = engine

    logger.info(
        f"Routes loaded: {len(engine.registry)} | "
        f"strict={engine.strict} | debug={engine.debug} | "
        f"id prefix={settings.GLOBAL_ID_PREFIX!r}"
    )

    yield

    # --- Shutdown ---
    logger.info("paymock shutting down.")
    counts = {name: len(engine.get_data(name)) for name in STORE_NAMES}
    logger.info(f"Final store sizes: {counts} | pending errors: {len(engine.error_queue)}")


app = FastAPI(
    title="paymock",
    description=(
        "In-memory mock of a payment processor's HTTP API: customers, charges, "
        "plans, subscriptions, coupons, invoices and the ledger entries behind them."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(control.router, tags=["Testing"])
app.include_router(api.router, tags=["Mock API"])


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        type(exc).__name__,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "An internal error occurred. Please try again later."},
    )


@app.get("/", tags=["Health"])
async def root():
    return {
        "service": "paymock",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
    }
