"""FastAPI dependencies resolving the components built by ``create_app``."""

from typing import Annotated

from fastapi import Depends
from fastapi import Request

from image_gateway.allowlist import AllowlistStore
from image_gateway.cache import ConversionCache
from image_gateway.config import Settings
from image_gateway.service import ImageService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_conversion_cache(request: Request) -> ConversionCache:
    return request.app.state.cache


def get_allowlist(request: Request) -> AllowlistStore:
    return request.app.state.allowlist


def get_image_service(request: Request) -> ImageService:
    return request.app.state.service


AppSettings = Annotated[Settings, Depends(get_app_settings)]
CacheDep = Annotated[ConversionCache, Depends(get_conversion_cache)]
AllowlistDep = Annotated[AllowlistStore, Depends(get_allowlist)]
ServiceDep = Annotated[ImageService, Depends(get_image_service)]
