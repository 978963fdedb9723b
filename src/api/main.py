"""FastAPI application entry point for the userbase service.

Run with:
    uvicorn src.api.main:app
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from dotenv import load_dotenv
from fastapi import FastAPI

from src import __version__
from src.api.errors import register_exception_handlers
from src.api.middleware.logging_middleware import LoggingMiddleware
from src.api.routes import (
    health_router,
    identities_router,
    merge_router,
    session_router,
    soft_posts_router,
    soft_votes_router,
)
from src.api.startup import configure_logging, log_startup_warnings

load_dotenv()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    log_startup_warnings()
    yield


app = FastAPI(
    title="Userbase API",
    description="Multi-identity linking and soft-action reconciliation",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(LoggingMiddleware)
register_exception_handlers(app)

app.include_router(health_router)
app.include_router(session_router)
app.include_router(identities_router)
app.include_router(merge_router)
app.include_router(soft_votes_router)
app.include_router(soft_posts_router)
