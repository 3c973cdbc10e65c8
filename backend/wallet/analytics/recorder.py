"""Usage analytics — one anonymized row per verification attempt.

Raw IPs and user agents never reach the database: both are salted, hashed
and truncated, and location is kept at country/city granularity. Recording
is best-effort and never fails the verification it describes.
"""

import hashlib
import logging
from urllib.parse import urlsplit

import httpx
from fastapi import Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from wallet.config import settings
from wallet.models import ShareView

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

BOT_MARKERS = ("bot", "crawler", "spider", "curl", "wget", "python-requests", "httpx")
TABLET_MARKERS = ("ipad", "tablet")
MOBILE_MARKERS = ("mobile", "iphone", "android")


class ViewerContext(BaseModel):
    ip: str | None = None
    user_agent: str | None = None
    country: str | None = None
    city: str | None = None
    referrer: str | None = None


def viewer_context_from_request(request: Request) -> ViewerContext:
    headers = request.headers
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = request.client.host if request.client else None
    return ViewerContext(
        ip=ip or None,
        user_agent=headers.get("user-agent") or None,
        country=headers.get("cf-ipcountry") or None,
        city=headers.get("cf-ipcity") or None,
        referrer=headers.get("referer") or None,
    )


def hash_identifier(value: str | None) -> str:
    if not value:
        return UNKNOWN
    digest = hashlib.sha256(f"{settings.analytics_hash_salt}{value}".encode()).hexdigest()
    return digest[: settings.analytics_hash_length]


def device_type(user_agent: str | None) -> str:
    if not user_agent:
        return UNKNOWN
    ua = user_agent.lower()
    if any(marker in ua for marker in BOT_MARKERS):
        return "bot"
    if any(marker in ua for marker in TABLET_MARKERS):
        return "tablet"
    if any(marker in ua for marker in MOBILE_MARKERS):
        return "mobile"
    return "desktop"


def referrer_domain(referrer: str | None) -> str | None:
    if not referrer:
        return None
    try:
        host = urlsplit(referrer).hostname
    except ValueError:
        return None
    return host[:255] if host else None


def coarse_country(country: str | None) -> str:
    # Cloudflare reports "XX" when the country is unknown.
    if not country or country.upper() in ("XX", "T1"):
        return UNKNOWN
    return country.strip().upper()[:64]


def coarse_city(city: str | None) -> str | None:
    return city.strip()[:128] if city and city.strip() else None


async def lookup_location(ip: str | None) -> tuple[str | None, str | None]:
    """Country and city from the configured geolocation endpoint, if any."""
    if not settings.geoip_url or not ip:
        return None, None
    async with httpx.AsyncClient(timeout=settings.geoip_timeout_seconds) as client:
        resp = await client.get(settings.geoip_url.format(ip=ip))
        resp.raise_for_status()
        data = resp.json()
    return data.get("country_code") or data.get("country"), data.get("city")


async def record_view(
    db: AsyncSession,
    share_id: str,
    ok: bool,
    viewer: ViewerContext | None = None,
    access_code_attempted: bool = False,
) -> ShareView | None:
    """Append a ShareView row under a savepoint; failures are logged and swallowed.

    Only the savepoint is rolled back on failure, so objects the caller has
    loaded in ``db`` stay usable.
    """
    viewer = viewer or ViewerContext()
    try:
        country, city = viewer.country, viewer.city
        if not country:
            try:
                country, city = await lookup_location(viewer.ip)
            except (httpx.HTTPError, ValueError):
                logger.warning("Geolocation lookup failed for share %s", share_id)

        view = ShareView(
            share_id=share_id,
            ip_hash=hash_identifier(viewer.ip),
            ua_hash=hash_identifier(viewer.user_agent),
            device_type=device_type(viewer.user_agent),
            country=coarse_country(country),
            city=coarse_city(city),
            referrer_domain=referrer_domain(viewer.referrer),
            ok=ok,
            access_code_attempt=access_code_attempted,
        )
        async with db.begin_nested():
            db.add(view)
        await db.commit()
        return view
    except Exception:
        logger.exception("Failed to record view for share %s", share_id)
        return None
