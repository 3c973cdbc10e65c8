"""Share issuance: validate a disclosure request and persist the share capability."""

import logging
import re
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Mapping, NamedTuple

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wallet.config import settings
from wallet.credentials.repository import get_credential
from wallet.disclosure.classifier import is_sensitive
from wallet.disclosure.policy import DisclosurePolicy, Preset, Visibility, build_policy, parse_preset
from wallet.errors import (
    InvalidExpiryError,
    InvalidFieldNameError,
    InvalidViewLimitError,
    NotFoundError,
    RateLimitedError,
    WeakAccessCodeError,
)
from wallet.models import Share, User
from wallet.security.service import check_rate_limit, log_security_event

logger = logging.getLogger(__name__)

RATE_LIMIT_ENDPOINT = "share_create"

_DATETIME = TypeAdapter(datetime)

FIELD_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_\-. ]+$")
DANGEROUS_FIELD_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"<script",
        r"javascript:",
        r"on\w+=",
        r"data:",
        r"vbscript:",
        r"expression\(",
        r"eval\(",
        r"function\(",
    )
]


class IssuedShare(NamedTuple):
    share: Share
    url: str


def to_naive_utc(value: datetime) -> datetime:
    """Stored timestamps are naive UTC."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def share_url(share_id: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/v/{share_id}"


def new_share_id() -> str:
    return secrets.token_urlsafe(16)  # 128 bits


def validate_expiry(expires_at: datetime | str, now: datetime) -> datetime:
    try:
        expires_at = _DATETIME.validate_python(expires_at)
    except ValidationError as exc:
        raise InvalidExpiryError("Share expiry must be an ISO 8601 timestamp") from exc
    expires_at = to_naive_utc(expires_at)
    if expires_at <= now:
        raise InvalidExpiryError("Share expiry must be in the future")
    horizon = now + timedelta(days=settings.share_max_expiry_days)
    if expires_at > horizon:
        raise InvalidExpiryError(f"Maximum expiry is {settings.share_max_expiry_days} days")
    return expires_at


def validate_max_views(max_views: int) -> int:
    if isinstance(max_views, bool) or not isinstance(max_views, int):
        raise InvalidViewLimitError("View limit must be an integer")
    if not 1 <= max_views <= settings.share_max_views:
        raise InvalidViewLimitError(f"View limit must be between 1 and {settings.share_max_views}")
    return max_views


def normalize_access_code(access_code: str | None) -> str | None:
    if access_code is None or access_code == "":
        return None
    if not isinstance(access_code, str):
        raise WeakAccessCodeError("Access code must be a string")
    code = access_code.strip()
    if len(code) < settings.access_code_min_length:
        raise WeakAccessCodeError(
            f"Access code must be at least {settings.access_code_min_length} characters"
        )
    return code


def validate_field_name(name: str) -> str:
    if not name or len(name) > settings.field_name_max_length:
        raise InvalidFieldNameError(f"Invalid field name length: {name[:20]!r}")
    if not FIELD_NAME_PATTERN.match(name):
        raise InvalidFieldNameError(f"Field name contains invalid characters: {name[:20]!r}")
    if any(pattern.search(name) for pattern in DANGEROUS_FIELD_PATTERNS):
        raise InvalidFieldNameError(f"Field name contains potentially dangerous content: {name[:20]!r}")
    return name


def disclosure_risk(policy: DisclosurePolicy) -> tuple[str, dict]:
    """Risk level and field counts recorded with the share's audit event."""
    visibilities = policy.field_visibility
    visible = [f for f, v in visibilities.items() if v is Visibility.VISIBLE]
    masked = [f for f, v in visibilities.items() if v is Visibility.MASKED]
    sensitive_visible = sum(1 for f in visible if is_sensitive(f))

    if sensitive_visible > 2:
        risk_level = "high"
    elif not masked and len(visible) > 10:
        risk_level = "medium"
    else:
        risk_level = "low"

    counts = {
        "visible_fields": len(visible),
        "masked_fields": len(masked),
        "hidden_fields": len(visibilities) - len(visible) - len(masked),
        "sensitive_visible": sensitive_visible,
        "preset": policy.preset.value,
    }
    return risk_level, counts


async def create_share(
    db: AsyncSession,
    user: User,
    credential_id: uuid.UUID | str,
    preset: str | Preset,
    expires_at: datetime,
    max_views: int,
    access_code: str | None = None,
    field_visibility: Mapping[str, str] | None = None,
    selected_fields: list[str] | None = None,
) -> IssuedShare:
    """Validate a disclosure request and persist one new share.

    All validation happens before anything is written; a rejected request
    leaves no share behind.
    """
    now = datetime.utcnow()
    preset = parse_preset(preset)
    expires_at = validate_expiry(expires_at, now)
    max_views = validate_max_views(max_views)
    access_code = normalize_access_code(access_code)

    overrides: dict[str, str] = {}
    if preset is Preset.CUSTOM:
        if field_visibility:
            overrides = dict(field_visibility)
        elif selected_fields:
            overrides = {name: Visibility.VISIBLE.value for name in selected_fields}
        for name in overrides:
            validate_field_name(name)

    credential = await get_credential(db, credential_id, owner_id=user.id)
    if credential is None:
        raise NotFoundError("Credential not found")

    policy = build_policy(preset, (credential.payload or {}).keys(), overrides)

    allowed = await check_rate_limit(
        db, user.id, RATE_LIMIT_ENDPOINT, settings.share_rate_limit, settings.share_rate_window_minutes
    )
    if not allowed:
        await db.commit()
        raise RateLimitedError()

    share = Share(
        id=new_share_id(),
        user_id=user.id,
        cred_id=credential.id,
        policy=policy.to_json(),
        expires_at=expires_at,
        max_views=max_views,
        views=0,
        access_code=access_code,
        revoked=False,
    )
    db.add(share)

    risk_level, counts = disclosure_risk(policy)
    await log_security_event(
        db, user.id, "selective_disclosure_share", "credential", str(credential.id), counts, risk_level
    )
    await db.commit()
    await db.refresh(share)

    logger.info("Share %s created for credential %s by user %s", share.id, credential.id, user.id)
    return IssuedShare(share=share, url=share_url(share.id))


async def list_shares(
    db: AsyncSession,
    user: User,
    credential_id: uuid.UUID | None = None,
) -> list[Share]:
    query = select(Share).where(Share.user_id == user.id)
    if credential_id is not None:
        query = query.where(Share.cred_id == credential_id)
    result = await db.execute(query.order_by(Share.created_at.desc()))
    return list(result.scalars().all())


async def get_owned_share(db: AsyncSession, user: User, share_id: str) -> Share:
    result = await db.execute(select(Share).where(Share.id == share_id, Share.user_id == user.id))
    share = result.scalar_one_or_none()
    if share is None:
        raise NotFoundError("Share not found")
    return share


async def revoke_share(db: AsyncSession, user: User, share_id: str) -> Share:
    share = await get_owned_share(db, user, share_id)
    if not share.revoked:
        share.revoked = True
        await log_security_event(db, user.id, "share_revoked", "share", share.id)
        await db.commit()
        logger.info("Share %s revoked by user %s", share.id, user.id)
    return share
