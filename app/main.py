"""FastAPI application entrypoint. No business logic; only wiring, middleware and startup bootstrap."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from app.api import router as api_router
from app.api.auth import credential_body_error_handler, get_user_store
from app.core.config import settings
from app.core.security import get_token_service
from app.services.bootstrap import bootstrap_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Fail fast on a missing signing key, then bootstrap the user store before serving."""
    get_token_service()
    if not settings.BOOTSTRAP_ENABLED:
        logger.info("Bootstrap disabled (BOOTSTRAP_ENABLED=false); skipping migrations and seed.")
        app.state.bootstrap_state = "disabled"
        yield
        return
    result = await run_in_threadpool(
        bootstrap_store,
        get_user_store(),
        admin_username=settings.DEFAULT_ADMIN_USERNAME,
        admin_password=settings.DEFAULT_ADMIN_PASSWORD.get_secret_value(),
        max_attempts=settings.BOOTSTRAP_MAX_ATTEMPTS,
        delay_seconds=settings.BOOTSTRAP_RETRY_DELAY_SEC,
    )
    logger.info(
        "Bootstrap complete: attempts=%s admin_created=%s",
        result.attempts,
        result.admin_created,
    )
    app.state.bootstrap_state = "complete"
    yield


app = FastAPI(
    title="Authgate API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.APP_ENV == "dev" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(RequestValidationError, credential_body_error_handler)
app.include_router(api_router)


@app.get("/", response_class=PlainTextResponse)
def root() -> str:
    """Root route; plain greeting for discovery."""
    return "Hello World! Authgate API with PostgreSQL is working!"


@app.get("/hello/{name}", response_class=PlainTextResponse)
def hello(name: str) -> str:
    return f"Hello {name}!"
