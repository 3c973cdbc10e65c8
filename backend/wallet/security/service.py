"""Audit logging and per-user rate limiting backed by the application database."""

import logging
import uuid
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wallet.models import AuditLog, RateLimitEvent

logger = logging.getLogger(__name__)

RISK_LEVELS = ("low", "medium", "high")


async def log_security_event(
    db: AsyncSession,
    user_id: uuid.UUID | None,
    event_type: str,
    resource_type: str | None = None,
    resource_id: str | None = None,
    metadata: dict | None = None,
    risk_level: str = "low",
) -> AuditLog:
    """Stage an audit row in the caller's transaction."""
    if risk_level not in RISK_LEVELS:
        raise ValueError(f"Unknown risk level: {risk_level}")

    entry = AuditLog(
        user_id=user_id,
        action=event_type,
        resource_type=resource_type,
        resource_id=resource_id,
        event_metadata={**(metadata or {}), "risk_level": risk_level},
        risk_level=risk_level,
    )
    db.add(entry)
    if risk_level == "high":
        logger.warning("High-risk activity for user %s: %s on %s", user_id, event_type, resource_id)
    return entry


async def check_rate_limit(
    db: AsyncSession,
    user_id: uuid.UUID,
    endpoint: str,
    limit: int = 10,
    window_minutes: int = 60,
) -> bool:
    """Sliding-window limit. Records a hit and returns True while under the limit."""
    since = datetime.utcnow() - timedelta(minutes=window_minutes)
    result = await db.execute(
        select(func.count(RateLimitEvent.id)).where(
            RateLimitEvent.user_id == user_id,
            RateLimitEvent.endpoint == endpoint,
            RateLimitEvent.created_at >= since,
        )
    )
    if result.scalar_one() >= limit:
        logger.warning("Rate limit exceeded for user %s on %s", user_id, endpoint)
        await log_security_event(
            db,
            user_id,
            "rate_limit_exceeded",
            "api_endpoint",
            metadata={"endpoint": endpoint, "limit": limit, "window_minutes": window_minutes},
            risk_level="medium",
        )
        return False

    db.add(RateLimitEvent(user_id=user_id, endpoint=endpoint))
    return True
