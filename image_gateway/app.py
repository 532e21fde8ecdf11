"""Composition root: builds every component and wires it into a FastAPI app."""

import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from logging import getLogger
from typing import Optional

from fastapi import FastAPI
from fastapi import Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from image_gateway.allowlist import AllowlistStore
from image_gateway.cache import ConversionCache
from image_gateway.config import Settings
from image_gateway.config import get_settings
from image_gateway.exceptions import ImageGatewayError
from image_gateway.models import ErrorResponse
from image_gateway.routes import add_routes
from image_gateway.service import ImageService
from image_gateway.storage import BaseBlobStore
from image_gateway.storage import MemoryBlobStore
from image_gateway.storage import S3BlobStore

logger = getLogger(__name__)


def build_store(settings: Settings) -> BaseBlobStore:
    if not settings.has_object_store:
        logger.warning("R2 settings incomplete, falling back to an in-memory store")
        return MemoryBlobStore()
    return S3BlobStore.from_credentials(
        endpoint_url=settings.r2_endpoint,
        access_key_id=settings.r2_access_key_id,
        secret_access_key=settings.r2_secret_access_key,
        bucket=settings.r2_bucket_name,
    )


def error_response(exc: ImageGatewayError) -> JSONResponse:
    body = ErrorResponse(error=exc.message, code=exc.code)
    return JSONResponse(
        status_code=exc.status_code, content=body.model_dump(by_alias=True)
    )


async def handle_gateway_error(request: Request, exc: ImageGatewayError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return error_response(exc)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(ImageGatewayError("Internal server error"))


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[BaseBlobStore] = None,
    cache: Optional[ConversionCache] = None,
    allowlist: Optional[AllowlistStore] = None,
) -> FastAPI:
    """Build the gateway application.

    Args:
        settings: Configuration, read from the environment when omitted
        store: Object store, built from ``settings`` when omitted
        cache: Conversion cache, built from ``settings`` when omitted
        allowlist: Moderator allowlist, built from ``settings`` when omitted
    """
    settings = settings or get_settings()
    store = store or build_store(settings)
    cache = cache or ConversionCache(
        default_ttl=settings.cache_ttl_seconds,
        cleanup_interval=settings.cache_cleanup_interval,
    )
    allowlist = allowlist or AllowlistStore(
        settings.moderators_file,
        ttl=settings.moderators_ttl_seconds,
        retry_interval=settings.moderators_retry_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        cache.start_cleanup()
        logger.info(
            "Serving on %s, conversions cached for %ss",
            settings.base_url,
            settings.cache_ttl_seconds,
        )
        yield
        await cache.stop_cleanup()

    app = FastAPI(title="image-gateway", lifespan=lifespan)
    app.state.settings = settings
    app.state.cache = cache
    app.state.allowlist = allowlist
    app.state.service = ImageService(
        store,
        cache,
        webp_quality=settings.webp_quality,
        max_upload_bytes=settings.max_upload_bytes,
    )
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ImageGatewayError, handle_gateway_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    add_routes(app)
    return app
