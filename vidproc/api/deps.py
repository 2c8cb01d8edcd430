from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from vidproc.core.auth import require_api_token
from vidproc.core.errors import (
    EditError,
    ExpiredError,
    InvalidMediaError,
    NotFoundError,
    ProbeError,
    StorageError,
    ValidationError,
    VidprocError,
)
from vidproc.db.stores import AssetStore
from vidproc.services.editing import EditPipeline
from vidproc.services.ingestion import IngestionPipeline
from vidproc.services.sharing import ShareLifecycle


def get_asset_store(request: Request) -> AssetStore:
    store: AssetStore = request.app.state.asset_store
    return store


def get_ingestion_pipeline(request: Request) -> IngestionPipeline:
    pipeline: IngestionPipeline = request.app.state.ingestion
    return pipeline


def get_edit_pipeline(request: Request) -> EditPipeline:
    pipeline: EditPipeline = request.app.state.editing
    return pipeline


def get_share_lifecycle(request: Request) -> ShareLifecycle:
    lifecycle: ShareLifecycle = request.app.state.sharing
    return lifecycle


AssetStoreDependency = Annotated[AssetStore, Depends(get_asset_store)]
IngestionDependency = Annotated[IngestionPipeline, Depends(get_ingestion_pipeline)]
EditDependency = Annotated[EditPipeline, Depends(get_edit_pipeline)]
SharingDependency = Annotated[ShareLifecycle, Depends(get_share_lifecycle)]
AuthDependency = Depends(require_api_token)


# Most specific first: InvalidMediaError before ProbeError.
_STATUS_BY_ERROR: tuple[tuple[type[VidprocError], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ExpiredError, status.HTTP_410_GONE),
    (InvalidMediaError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ProbeError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (EditError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (StorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def to_http_exception(exc: VidprocError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail={"code": exc.code, "message": exc.message})
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"code": exc.code, "message": exc.message},
    )


__all__ = [
    "get_asset_store",
    "get_ingestion_pipeline",
    "get_edit_pipeline",
    "get_share_lifecycle",
    "AssetStoreDependency",
    "IngestionDependency",
    "EditDependency",
    "SharingDependency",
    "AuthDependency",
    "to_http_exception",
]
