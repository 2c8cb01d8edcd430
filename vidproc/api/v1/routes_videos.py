from __future__ import annotations

from typing import AsyncIterator, List

from fastapi import APIRouter, File, HTTPException, UploadFile, status

from vidproc.api import deps
from vidproc.core.errors import VidprocError

from . import schemas


router = APIRouter(prefix="/videos", tags=["videos"], dependencies=[deps.AuthDependency])

UPLOAD_CHUNK_BYTES = 1024 * 1024


async def _iter_upload(upload: UploadFile) -> AsyncIterator[bytes]:
    while True:
        chunk = await upload.read(UPLOAD_CHUNK_BYTES)
        if not chunk:
            break
        yield chunk


@router.post("", response_model=schemas.VideoResponse, status_code=status.HTTP_201_CREATED, summary="Upload a video")
async def upload_video(
    pipeline: deps.IngestionDependency,
    video: UploadFile = File(..., description="The video file to ingest."),
) -> schemas.VideoResponse:
    try:
        asset = await pipeline.ingest(
            video.filename or "",
            _iter_upload(video),
            content_type=video.content_type,
        )
    except VidprocError as exc:
        raise deps.to_http_exception(exc) from exc
    finally:
        await video.close()
    return schemas.VideoResponse.model_validate(asset)


@router.get("", response_model=List[schemas.VideoResponse], summary="List videos")
async def list_videos(store: deps.AssetStoreDependency) -> List[schemas.VideoResponse]:
    try:
        assets = await store.list()
    except VidprocError as exc:
        raise deps.to_http_exception(exc) from exc
    return [schemas.VideoResponse.model_validate(asset) for asset in assets]


@router.post(
    "/merge",
    response_model=schemas.VideoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Concatenate videos in the given order",
)
async def merge_videos(payload: schemas.MergeRequest, pipeline: deps.EditDependency) -> schemas.VideoResponse:
    try:
        asset = await pipeline.merge(payload.video_ids)
    except VidprocError as exc:
        raise deps.to_http_exception(exc) from exc
    return schemas.VideoResponse.model_validate(asset)


@router.get("/{video_id}", response_model=schemas.VideoResponse, summary="Fetch one video")
async def get_video(video_id: str, store: deps.AssetStoreDependency) -> schemas.VideoResponse:
    try:
        asset = await store.get(video_id)
    except VidprocError as exc:
        raise deps.to_http_exception(exc) from exc
    if asset is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "video_not_found", "message": f"video {video_id} not found"},
        )
    return schemas.VideoResponse.model_validate(asset)


@router.post(
    "/{video_id}/trim",
    response_model=schemas.VideoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Cut a time range into a new video",
)
async def trim_video(
    video_id: str,
    payload: schemas.TrimRequest,
    pipeline: deps.EditDependency,
) -> schemas.VideoResponse:
    try:
        asset = await pipeline.trim(video_id, payload.start, payload.end)
    except VidprocError as exc:
        raise deps.to_http_exception(exc) from exc
    return schemas.VideoResponse.model_validate(asset)


__all__ = ["router"]
