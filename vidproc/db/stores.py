from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vidproc.core.errors import NotFoundError, StorageError
from vidproc.core.logging import get_logger

from .models import Asset, AssetStatus, ShareLink


class AssetStore:
    """Durable asset records.

    Each call opens its own short session, so the single pooled connection
    is never held while a pipeline waits on an external tool. Writes flush
    first and end on ``commit()``; nothing fallible follows the commit.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self.logger = get_logger(component="asset_store")

    async def create(self, asset: Asset) -> Asset:
        try:
            async with self.session_factory() as session:
                session.add(asset)
                await session.flush()
                await session.commit()
        except SQLAlchemyError as exc:
            self.logger.error("asset_create_failed", asset_id=asset.id, error=str(exc))
            raise StorageError(f"failed to save asset {asset.id}") from exc
        return asset

    async def get(self, asset_id: str) -> Asset | None:
        try:
            async with self.session_factory() as session:
                return await session.get(Asset, asset_id)
        except SQLAlchemyError as exc:
            raise StorageError(f"failed to load asset {asset_id}") from exc

    async def list(self) -> list[Asset]:
        stmt = select(Asset).order_by(Asset.created_at.desc(), Asset.id)
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise StorageError("failed to list assets") from exc

    async def update_status(self, asset_id: str, status: AssetStatus, error_detail: str | None = None) -> Asset:
        """Move an asset to ``status``; ``error_detail`` is kept only for failures."""
        try:
            async with self.session_factory() as session:
                asset = await session.get(Asset, asset_id)
                if asset is None:
                    raise NotFoundError(f"asset {asset_id} not found", entity_id=asset_id, code="asset_not_found")
                asset.status = status
                asset.error_detail = error_detail if status == AssetStatus.failed else None
                await session.flush()
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"failed to update asset {asset_id}") from exc
        return asset


class ShareLinkStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self.logger = get_logger(component="share_link_store")

    async def create(self, link: ShareLink) -> ShareLink:
        try:
            async with self.session_factory() as session:
                session.add(link)
                await session.flush()
                await session.commit()
        except SQLAlchemyError as exc:
            self.logger.error("share_link_create_failed", share_id=link.id, error=str(exc))
            raise StorageError(f"failed to save share link {link.id}") from exc
        return link

    async def get(self, share_id: str) -> ShareLink | None:
        try:
            async with self.session_factory() as session:
                return await session.get(ShareLink, share_id)
        except SQLAlchemyError as exc:
            raise StorageError(f"failed to load share link {share_id}") from exc

    async def list_all(self) -> list[ShareLink]:
        return await self._select(select(ShareLink))

    async def list_by_asset(self, asset_id: str) -> list[ShareLink]:
        return await self._select(select(ShareLink).where(ShareLink.asset_id == asset_id))

    async def delete(self, share_id: str) -> bool:
        try:
            async with self.session_factory() as session:
                result = await session.execute(delete(ShareLink).where(ShareLink.id == share_id))
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"failed to delete share link {share_id}") from exc
        return bool(result.rowcount)

    async def _select(self, stmt) -> list[ShareLink]:
        stmt = stmt.order_by(ShareLink.created_at.desc(), ShareLink.id)
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise StorageError("failed to list share links") from exc


__all__ = ["AssetStore", "ShareLinkStore"]
