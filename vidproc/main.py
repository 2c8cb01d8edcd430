from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from vidproc.api.v1 import get_api_router
from vidproc.core.config import get_settings
from vidproc.core.db import create_engine, create_session_factory, init_models
from vidproc.core.logging import configure_logging, get_logger, level_from_name
from vidproc.core.storage import get_storage
from vidproc.db.stores import AssetStore, ShareLinkStore
from vidproc.media.editor import FFmpegMediaEditor, MediaEditor
from vidproc.media.probe import FFprobeMediaProbe, MediaProbe
from vidproc.services.editing import EditPipeline
from vidproc.services.ingestion import IngestionPipeline
from vidproc.services.sharing import ShareLifecycle

logger = get_logger(component="app")


def create_app(*, probe: Optional[MediaProbe] = None, editor: Optional[MediaEditor] = None) -> FastAPI:
    """Build the API application.

    ``probe`` and ``editor`` default to the ffprobe/ffmpeg backed
    implementations; tests pass in doubles.
    """
    settings = get_settings()
    configure_logging(level=level_from_name(settings.log_level))
    media_probe = probe or FFprobeMediaProbe(settings.ffprobe_path, timeout=settings.tool_timeout_s)
    media_editor = editor or FFmpegMediaEditor(settings.ffmpeg_path, timeout=settings.tool_timeout_s)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        storage = get_storage(settings)
        engine = create_engine(settings)
        await init_models(engine)
        session_factory = create_session_factory(engine)
        asset_store = AssetStore(session_factory)
        link_store = ShareLinkStore(session_factory)

        app.state.settings = settings
        app.state.storage = storage
        app.state.engine = engine
        app.state.asset_store = asset_store
        app.state.ingestion = IngestionPipeline(settings, storage, media_probe, asset_store)
        app.state.editing = EditPipeline(storage, media_editor, media_probe, asset_store)
        app.state.sharing = ShareLifecycle(settings, asset_store, link_store)
        logger.info("app_started", environment=settings.environment, storage_path=str(settings.video_storage_path))
        try:
            yield
        finally:
            await engine.dispose()
            logger.info("app_stopped")

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        lifespan=lifespan,
        openapi_url="/openapi.json",
        docs_url="/docs",
    )
    app.include_router(get_api_router())
    return app


app = create_app()


__all__ = ["app", "create_app"]
