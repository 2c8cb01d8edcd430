from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable
from uuid import uuid4

from vidproc.core.config import Settings
from vidproc.core.errors import ExpiredError, NotFoundError, ValidationError
from vidproc.core.logging import get_logger
from vidproc.db.models import Asset, ShareLink, utcnow
from vidproc.db.stores import AssetStore, ShareLinkStore

Clock = Callable[[], datetime]


@dataclass(frozen=True, slots=True)
class ResolvedShare:
    link: ShareLink
    asset: Asset


class ShareLifecycle:
    """Time-bounded public links to assets.

    Expiry is never stored as a flag and nothing sweeps expired rows:
    liveness is ``now < expires_at`` evaluated on every read against the
    injected clock.
    """

    def __init__(
        self,
        settings: Settings,
        assets: AssetStore,
        links: ShareLinkStore,
        *,
        clock: Clock = utcnow,
    ):
        self.settings = settings
        self.assets = assets
        self.links = links
        self.clock = clock
        self.logger = get_logger(component="share_lifecycle")

    async def create(self, asset_id: str, ttl_hours: int) -> ShareLink:
        asset = await self.assets.get(asset_id)
        if asset is None:
            raise NotFoundError(f"video {asset_id} not found", entity_id=asset_id, code="video_not_found")

        low, high = self.settings.share_min_ttl_hours, self.settings.share_max_ttl_hours
        if isinstance(ttl_hours, bool) or not isinstance(ttl_hours, int) or not low <= ttl_hours <= high:
            raise ValidationError(
                f"invalid duration (must be between {low} and {high} hours)",
                code="invalid_ttl",
            )

        now = self.clock()
        link = ShareLink(
            id=uuid4().hex,
            asset_id=asset.id,
            expires_at=now + timedelta(hours=ttl_hours),
            created_at=now,
        )
        link = await self.links.create(link)
        self.logger.info("share_link_created", share_id=link.id, asset_id=asset.id, expires_at=link.expires_at.isoformat())
        return link

    async def resolve(self, share_id: str) -> ResolvedShare:
        link = await self.links.get(share_id)
        if link is None:
            raise NotFoundError(f"share link {share_id} not found", entity_id=share_id, code="share_not_found")
        if not link.is_live(self.clock()):
            raise ExpiredError(f"share link {share_id} has expired", code="share_expired")

        asset = await self.assets.get(link.asset_id)
        if asset is None:
            raise NotFoundError(f"video {link.asset_id} not found", entity_id=link.asset_id, code="video_not_found")
        return ResolvedShare(link=link, asset=asset)

    async def list(self, asset_id: str | None = None) -> list[ShareLink]:
        if asset_id:
            links = await self.links.list_by_asset(asset_id)
        else:
            links = await self.links.list_all()
        now = self.clock()
        return [link for link in links if link.is_live(now)]

    async def delete(self, share_id: str) -> None:
        removed = await self.links.delete(share_id)
        self.logger.info("share_link_deleted", share_id=share_id, existed=removed)


__all__ = ["Clock", "ResolvedShare", "ShareLifecycle"]
