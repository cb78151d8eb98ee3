"""Storefront FastAPI application entry point.

Start with:
    uvicorn storefront.api.main:app --reload --host 0.0.0.0 --port 8000

Needs PostgreSQL (DATABASE_URL) and an S3-compatible bucket (S3_*). The
database, tables, order sequence and bucket are created on startup when
missing.
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.api.errors import register_exception_handlers
from storefront.api.rate_limit import limiter
from storefront.api.routers import orders, products
from storefront.config import load_intake_config, load_postgres_config, load_storage_config
from storefront.core.exceptions import ExternalServiceError
from storefront.core.logger import configure
from storefront.infra.database import (
    SqlCatalog,
    SqlOrderStore,
    build_engine,
    build_session_factory,
    close_engine,
    ensure_database_exists,
    init_db,
)
from storefront.infra.storage import S3BlobStore
from storefront.services.order_service import OrderService

logger = logging.getLogger(__name__)

_DEBUG = os.environ.get("APP_DEBUG", "").strip().lower() in ("1", "true", "yes")
_CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]


async def _open_database() -> async_sessionmaker[AsyncSession]:
    pg_config = load_postgres_config()
    await ensure_database_exists(pg_config)
    session_factory = build_session_factory(build_engine(pg_config))
    await init_db(pg_config)
    return session_factory


async def _open_blob_store() -> S3BlobStore:
    blob_store = S3BlobStore(load_storage_config())
    try:
        await blob_store.ensure_bucket()
    except ExternalServiceError as exc:
        # Startup continues; order intake reports the upload failures
        logger.warning("API: bucket %s not ready (%s)", blob_store.bucket, exc)
    return blob_store


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure()
    session_factory = await _open_database()
    app.state.session_factory = session_factory
    app.state.order_service = OrderService(
        SqlOrderStore(session_factory),
        SqlCatalog(session_factory),
        await _open_blob_store(),
        config=load_intake_config(),
    )
    logger.info("API: order service ready")
    try:
        yield
    finally:
        await close_engine()
        logger.info("API: engine disposed")


app = FastAPI(
    title="Storefront API",
    version="1.0.0",
    description="Order intake with payment proofs and product images, order management and the product catalog.",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
register_exception_handlers(app, debug=_DEBUG)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(orders.router)
app.include_router(products.router)


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
