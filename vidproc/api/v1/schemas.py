from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from vidproc.db.models import AssetStatus


class HealthResponse(BaseModel):
    status: str = Field(default="available", description="Health status indicator.")
    time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class VideoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., json_schema_extra={"example": "9b1f0c2d4e6a48b0a1c3e5f7a9b1c3d5"})
    storage_key: str = Field(..., json_schema_extra={"example": "9b1f0c2d4e6a48b0a1c3e5f7a9b1c3d5_original.mp4"})
    size_bytes: int
    duration_seconds: int
    status: AssetStatus = Field(description="pending | processing | completed | failed")
    error_detail: Optional[str] = None
    created_at: datetime


class TrimRequest(BaseModel):
    start: float = Field(..., json_schema_extra={"example": 0.0})
    end: float = Field(..., json_schema_extra={"example": 5.0})


class MergeRequest(BaseModel):
    video_ids: List[str] = Field(..., json_schema_extra={"example": ["id-one", "id-two"]})


class CreateShareRequest(BaseModel):
    video_id: str
    ttl_hours: int = Field(..., json_schema_extra={"example": 24})


class ShareLinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    video_id: str = Field(validation_alias="asset_id")
    expires_at: datetime
    created_at: datetime


class ResolvedShareResponse(BaseModel):
    share_link: ShareLinkResponse
    video: VideoResponse


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    detail: ErrorDetail | str


__all__ = [
    "HealthResponse",
    "VideoResponse",
    "TrimRequest",
    "MergeRequest",
    "CreateShareRequest",
    "ShareLinkResponse",
    "ResolvedShareResponse",
    "ErrorResponse",
]
