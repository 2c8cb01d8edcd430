from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Query, Response, status

from vidproc.api import deps
from vidproc.core.errors import VidprocError

from . import schemas


router = APIRouter(prefix="/shares", tags=["shares"])


@router.post(
    "",
    response_model=schemas.ShareLinkResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[deps.AuthDependency],
    summary="Create a time-limited share link",
)
async def create_share(payload: schemas.CreateShareRequest, sharing: deps.SharingDependency) -> schemas.ShareLinkResponse:
    try:
        link = await sharing.create(payload.video_id, payload.ttl_hours)
    except VidprocError as exc:
        raise deps.to_http_exception(exc) from exc
    return schemas.ShareLinkResponse.model_validate(link)


@router.get(
    "",
    response_model=List[schemas.ShareLinkResponse],
    dependencies=[deps.AuthDependency],
    summary="List live share links",
)
async def list_shares(
    sharing: deps.SharingDependency,
    video_id: Optional[str] = Query(default=None, description="Only links for this video."),
) -> List[schemas.ShareLinkResponse]:
    try:
        links = await sharing.list(video_id)
    except VidprocError as exc:
        raise deps.to_http_exception(exc) from exc
    return [schemas.ShareLinkResponse.model_validate(link) for link in links]


@router.get(
    "/{share_id}",
    response_model=schemas.ResolvedShareResponse,
    responses={404: {"model": schemas.ErrorResponse}, 410: {"model": schemas.ErrorResponse}},
    summary="Resolve a share link (public)",
)
async def resolve_share(share_id: str, sharing: deps.SharingDependency) -> schemas.ResolvedShareResponse:
    try:
        resolved = await sharing.resolve(share_id)
    except VidprocError as exc:
        raise deps.to_http_exception(exc) from exc
    return schemas.ResolvedShareResponse(
        share_link=schemas.ShareLinkResponse.model_validate(resolved.link),
        video=schemas.VideoResponse.model_validate(resolved.asset),
    )


@router.delete(
    "/{share_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[deps.AuthDependency],
    summary="Delete a share link (idempotent)",
)
async def delete_share(share_id: str, sharing: deps.SharingDependency) -> Response:
    try:
        await sharing.delete(share_id)
    except VidprocError as exc:
        raise deps.to_http_exception(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
