"""JSON response envelopes."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(ApiModel):
    success: bool = True


class ErrorResponse(ApiResponse):
    success: bool = False
    error: str
    code: str


class MessageResponse(ApiResponse):
    message: str


class UploadResponse(ApiResponse):
    file_name: str
    original_name: str
    converted: bool
    original_size: int
    final_size: int
    reduction: str = Field(description="Size reduction as a percentage string")
    url: str
    direct_url: str


class ImageInfo(ApiModel):
    file_name: str
    size: int
    last_modified: Optional[datetime] = None
    url: str
    direct_url: str


class ImageListResponse(ApiResponse):
    count: int
    images: list[ImageInfo]


class CacheStatsBody(ApiModel):
    keys: int = Field(description="Number of unexpired cached conversions")
    hits: int
    misses: int
    hit_rate: float = Field(description="hits / (hits + misses), 0 when both are 0")


class CacheStatsResponse(ApiResponse):
    stats: CacheStatsBody


class ModeratorCheckResponse(ApiResponse):
    username: str
    is_moderator: bool
    message: str


class ModeratorListResponse(ApiResponse):
    count: int
    moderators: list[str]


class ModeratorReloadResponse(MessageResponse):
    count: int


class HealthCache(ApiModel):
    keys: int


class HealthResponse(ApiModel):
    status: str = "ok"
    timestamp: datetime
    uptime: float
    cache: HealthCache
