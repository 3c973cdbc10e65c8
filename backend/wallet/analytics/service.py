"""Share analytics dashboard — aggregates over the ShareView log of one share."""

from collections import Counter

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wallet.models import Share, ShareView

RECENT_VIEWS = 10


async def share_analytics(db: AsyncSession, share: Share) -> dict:
    result = await db.execute(
        select(ShareView).where(ShareView.share_id == share.id).order_by(ShareView.viewed_at.desc())
    )
    views = result.scalars().all()
    successful = [v for v in views if v.ok]

    return {
        "share_id": share.id,
        "views": share.views,
        "max_views": share.max_views,
        "expires_at": share.expires_at,
        "total_views": len(successful),
        "failed_attempts": len(views) - len(successful),
        "unique_viewers": len({v.ip_hash for v in successful if v.ip_hash and v.ip_hash != "unknown"}),
        "access_code_attempts": sum(1 for v in views if v.access_code_attempt),
        "countries": dict(Counter(v.country or "unknown" for v in successful)),
        "devices": dict(Counter(v.device_type or "unknown" for v in successful)),
        "recent_views": views[:RECENT_VIEWS],
    }
