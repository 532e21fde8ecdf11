"""HTTP routes for image upload, retrieval, cache and moderator management."""

import time
from datetime import datetime
from datetime import timezone
from logging import getLogger
from typing import Optional

from fastapi import APIRouter
from fastapi import Depends
from fastapi import FastAPI
from fastapi import File
from fastapi import Request
from fastapi import Response
from fastapi import UploadFile

from image_gateway.auth import require_api_key
from image_gateway.config import Settings
from image_gateway.dependencies import AllowlistDep
from image_gateway.dependencies import AppSettings
from image_gateway.dependencies import CacheDep
from image_gateway.dependencies import ServiceDep
from image_gateway.exceptions import ValidationError
from image_gateway.models import CacheStatsBody
from image_gateway.models import CacheStatsResponse
from image_gateway.models import HealthCache
from image_gateway.models import HealthResponse
from image_gateway.models import ImageInfo
from image_gateway.models import ImageListResponse
from image_gateway.models import MessageResponse
from image_gateway.models import ModeratorCheckResponse
from image_gateway.models import ModeratorListResponse
from image_gateway.models import ModeratorReloadResponse
from image_gateway.models import UploadResponse
from image_gateway.service import UploadResult
from image_gateway.types import ImageFormat

API_PREFIX = "/api/v1"
DEFAULT_FORMAT = ImageFormat.PNG

logger = getLogger(__name__)

router = APIRouter(prefix=API_PREFIX)
health_router = APIRouter()

authenticated = [Depends(require_api_key)]


def single_query_param(request: Request, name: str) -> Optional[str]:
    """Return the one value of query parameter ``name``, or None if absent.

    Raises:
        ValidationError: If the parameter was sent more than once
    """
    values = request.query_params.getlist(name)
    if len(values) > 1:
        raise ValidationError(f"Query parameter '{name}' must be given only once")
    return values[0] if values else None


def parse_format(value: Optional[str]) -> ImageFormat:
    if value is None:
        return DEFAULT_FORMAT
    fmt = ImageFormat.from_name(value)
    if fmt is None:
        allowed = ", ".join(f.value for f in ImageFormat)
        raise ValidationError(f"Unsupported format '{value}'. Use one of: {allowed}")
    return fmt


def image_url(settings: Settings, file_name: str) -> str:
    return f"{settings.base_url}{API_PREFIX}/image/{file_name}"


def upload_response(settings: Settings, result: UploadResult) -> UploadResponse:
    url = image_url(settings, result.file_name)
    return UploadResponse(
        file_name=result.file_name,
        original_name=result.original_name,
        converted=result.converted,
        original_size=result.original_size,
        final_size=result.final_size,
        reduction=result.reduction,
        url=url,
        direct_url=f"{url}?format=webp",
    )


@router.post("/upload", dependencies=authenticated)
async def upload_image(
    service: ServiceDep,
    settings: AppSettings,
    image: Optional[UploadFile] = File(default=None),
) -> UploadResponse:
    if image is None or not image.filename:
        raise ValidationError("No image was provided")
    data = await image.read()
    result = await service.upload(image.filename, data)
    return upload_response(settings, result)


@router.post("/upload-direct", dependencies=authenticated)
async def upload_image_direct(
    request: Request, service: ServiceDep, settings: AppSettings
) -> UploadResponse:
    file_name = single_query_param(request, "fileName") or request.headers.get(
        "x-filename"
    )
    content_type = request.headers.get("content-type", "").split(";")[0].strip()
    if content_type != ImageFormat.PNG.media_type:
        raise ValidationError("Body must be sent as image/png")
    data = await request.body()
    result = await service.upload_png(file_name or "", data)
    return upload_response(settings, result)


@router.get("/image/{file_name}")
async def get_image(file_name: str, request: Request, service: ServiceDep) -> Response:
    fmt = parse_format(single_query_param(request, "format"))
    result = await service.fetch(file_name, fmt)
    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={"X-Cache": "HIT" if result.cache_hit else "MISS"},
    )


@router.get("/images")
async def list_images(service: ServiceDep, settings: AppSettings) -> ImageListResponse:
    images = []
    for obj in await service.list_images():
        url = image_url(settings, obj.key)
        images.append(
            ImageInfo(
                file_name=obj.key,
                size=obj.size,
                last_modified=obj.last_modified,
                url=url,
                direct_url=f"{url}?format=webp",
            )
        )
    return ImageListResponse(count=len(images), images=images)


@router.delete("/image/{file_name}", dependencies=authenticated)
async def delete_image(file_name: str, service: ServiceDep) -> MessageResponse:
    await service.delete(file_name)
    return MessageResponse(message=f"Image {file_name} deleted")


@router.get("/cache/stats")
async def cache_stats(cache: CacheDep) -> CacheStatsResponse:
    stats = await cache.stats()
    return CacheStatsResponse(
        stats=CacheStatsBody(
            keys=stats.keys,
            hits=stats.hits,
            misses=stats.misses,
            hit_rate=stats.hit_rate,
        )
    )


@router.post("/cache/clear", dependencies=authenticated)
async def cache_clear(cache: CacheDep) -> MessageResponse:
    await cache.clear()
    logger.info("Conversion cache cleared")
    return MessageResponse(message="Cache cleared")


@router.get("/moderator/check/{username}")
async def check_moderator(
    username: str, allowlist: AllowlistDep
) -> ModeratorCheckResponse:
    if not username.strip():
        raise ValidationError("Username is required")
    is_moderator = await allowlist.is_member(username)
    return ModeratorCheckResponse(
        username=username,
        is_moderator=is_moderator,
        message="User is a moderator" if is_moderator else "User is not a moderator",
    )


@router.get("/moderators")
async def list_moderators(allowlist: AllowlistDep) -> ModeratorListResponse:
    moderators = sorted(await allowlist.members())
    return ModeratorListResponse(count=len(moderators), moderators=moderators)


@router.post("/moderators/reload", dependencies=authenticated)
async def reload_moderators(allowlist: AllowlistDep) -> ModeratorReloadResponse:
    moderators = await allowlist.reload()
    return ModeratorReloadResponse(
        message="Moderator list reloaded", count=len(moderators)
    )


@health_router.get("/health")
async def health(request: Request, cache: CacheDep) -> HealthResponse:
    stats = await cache.stats()
    return HealthResponse(
        timestamp=datetime.now(timezone.utc),
        uptime=time.monotonic() - request.app.state.started_at,
        cache=HealthCache(keys=stats.keys),
    )


def add_routes(app: FastAPI) -> None:
    """Mount the API and health routes on ``app``."""
    app.include_router(router)
    app.include_router(health_router)
