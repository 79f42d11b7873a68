"""
Main application entry point for the Contacts API.

This module initializes the FastAPI application: logging, CORS,
the rate limiter with a Redis backend, the contacts router, the
error handler for contact service failures and the static route
serving locally stored uploads.

Modules:
- FastAPI: Web framework
- CORSMiddleware: Middleware for handling CORS
- FastAPILimiter: Rate limiting
- redis.asyncio: Async Redis client
- fakeredis: In-process Redis used when no server is configured
- app.database: Database engine and table creation
- app.contacts: Contacts router
- app.errors: Contact service error types
- app.core: Application settings
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import redis.asyncio as redis
from redis.exceptions import RedisError
from fakeredis import FakeAsyncRedis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi_limiter import FastAPILimiter

from app import contacts
from app.core import get_settings
from app.database import engine, init_db
from app.errors import ContactServiceError
from app.logging_config import setup_logging

settings = get_settings()
setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
logger = logging.getLogger(__name__)


async def init_rate_limiter():
    """
    Initialize the rate limiter.

    Uses the Redis server at ``REDIS_URL`` when it is configured and
    reachable, otherwise an in-process fake Redis.

    Returns:
        Redis: Client the limiter was initialized with.
    """
    if settings.REDIS_URL:
        client = redis.from_url(
            settings.REDIS_URL, encoding="utf-8", decode_responses=True
        )
        try:
            await FastAPILimiter.init(client)
            return client
        except (RedisError, OSError):
            logger.warning(
                "Redis at %s unavailable, rate limiting in memory", settings.REDIS_URL
            )
            await client.aclose()

    client = FakeAsyncRedis(decode_responses=True)
    await FastAPILimiter.init(client)
    return client


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Creates missing tables and initializes the rate limiter on startup;
    closes the limiter client and releases pooled connections on shutdown.
    """
    init_db()
    limiter_client = await init_rate_limiter()
    logger.info("Contacts API started")
    yield
    await limiter_client.aclose()
    engine.dispose()


# Initialize FastAPI application
app = FastAPI(title="Contacts API", lifespan=lifespan)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ContactServiceError)
async def contact_service_error_handler(request: Request, exc: ContactServiceError):
    """Render contact service errors as ``{"detail": message}``."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(contacts.router)

if settings.BLOB_BACKEND.lower() == "local":
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")


@app.get("/")
def root():
    """
    Root endpoint for the API.

    Returns a simple JSON message directing users to the Swagger UI.

    Returns:
        dict: JSON message with information about the API
    """
    return {"msg": "Contacts API. Visit /docs for Swagger UI"}
