"""Share verification state machine.

A verifier dereferencing ``/v/<share_id>`` moves the share through these
checks, in order, stopping at the first one that fails:

    NOT_FOUND -> REVOKED -> EXPIRED -> VIEWS_EXHAUSTED -> INVALID_ACCESS_CODE

A share passing all of them is VERIFIED, which consumes exactly one view via
a conditional UPDATE. The view counter is never read-then-written: two
concurrent verifiers racing for the last view cannot both win.

Terminal states are returned as values, never raised. Every attempt on an
existing share is recorded as a ShareView.
"""

import hmac
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wallet.analytics.recorder import ViewerContext, record_view
from wallet.config import settings
from wallet.credentials.repository import get_credential
from wallet.disclosure.policy import DisclosurePolicy, apply_policy
from wallet.models import Credential, Share

logger = logging.getLogger(__name__)


class VerificationStatus(str, Enum):
    PENDING_ACCESS_CODE = "pending_access_code"
    VERIFIED = "verified"
    NOT_FOUND = "not_found"
    REVOKED = "revoked"
    EXPIRED = "expired"
    VIEWS_EXHAUSTED = "views_exhausted"
    INVALID_ACCESS_CODE = "invalid_access_code"


# Exhaustion is reported as "expired" so unauthenticated verifiers cannot
# tell a used-up link from a timed-out one.
WIRE_STATUS = {
    VerificationStatus.VERIFIED: "valid",
    VerificationStatus.NOT_FOUND: "not_found",
    VerificationStatus.REVOKED: "revoked",
    VerificationStatus.EXPIRED: "expired",
    VerificationStatus.VIEWS_EXHAUSTED: "expired",
    VerificationStatus.INVALID_ACCESS_CODE: "invalid_code",
    VerificationStatus.PENDING_ACCESS_CODE: "invalid_code",
}

HTTP_STATUS = {
    VerificationStatus.NOT_FOUND: 404,
    VerificationStatus.INVALID_ACCESS_CODE: 401,
    VerificationStatus.PENDING_ACCESS_CODE: 401,
}


@dataclass
class VerificationResult:
    status: VerificationStatus
    checked_at: datetime
    credential: dict[str, Any] | None = None
    share: dict[str, Any] | None = None
    issuer_trusted: bool = False
    fraud_flags: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is VerificationStatus.VERIFIED

    @property
    def wire_status(self) -> str:
        return WIRE_STATUS[self.status]

    @property
    def http_status(self) -> int:
        return HTTP_STATUS.get(self.status, 200)

    @property
    def requires_access_code(self) -> bool:
        return self.status in (VerificationStatus.INVALID_ACCESS_CODE, VerificationStatus.PENDING_ACCESS_CODE)


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def access_code_matches(expected: str, supplied: str | None) -> bool:
    return hmac.compare_digest(expected.encode(), (supplied or "").strip().encode())


def issuer_trusted(credential: Credential) -> bool:
    if credential.status != "valid":
        return False
    if not settings.trusted_issuer_domains:
        return True
    return (credential.issuer_domain or "").lower() in {d.lower() for d in settings.trusted_issuer_domains}


def failed_state(share: Share, now: datetime) -> VerificationStatus | None:
    """First failing share-state check, or None when the share is usable."""
    if share.revoked:
        return VerificationStatus.REVOKED
    if now >= share.expires_at:
        return VerificationStatus.EXPIRED
    if share.views >= share.max_views:
        return VerificationStatus.VIEWS_EXHAUSTED
    return None


async def consume_view(db: AsyncSession, share_id: str, now: datetime) -> int | None:
    """Atomically take one view. Returns the new view count, or None if the share is no longer usable."""
    result = await db.execute(
        update(Share)
        .where(
            Share.id == share_id,
            Share.revoked.is_(False),
            Share.expires_at > now,
            Share.views < Share.max_views,
        )
        .values(views=Share.views + 1, updated_at=now)
        .returning(Share.views)
        .execution_options(synchronize_session=False)
    )
    views = result.scalar_one_or_none()
    await db.commit()
    return views


def build_disclosure(share: Share, credential: Credential, views_after: int) -> tuple[dict, dict]:
    policy = DisclosurePolicy.model_validate(share.policy)
    credential_view = {
        "title": credential.title,
        "issuer_name": credential.issuer_name,
        "issuer_domain": credential.issuer_domain,
        "issued_date": _isoformat(credential.issued_date),
        "expires_at": _isoformat(credential.expires_at),
        "payload": apply_policy(policy, credential.payload),
    }
    share_view = {
        "created_at": _isoformat(share.created_at),
        "views": views_after,
        "max_views": share.max_views,
        "expires_at": _isoformat(share.expires_at),
        "policy": {"preset": policy.preset.value},
    }
    return credential_view, share_view


async def verify(
    db: AsyncSession,
    share_id: str,
    supplied_access_code: str | None = None,
    viewer: ViewerContext | None = None,
) -> VerificationResult:
    now = datetime.utcnow()

    result = await db.execute(
        select(Share).where(Share.id == share_id).execution_options(populate_existing=True)
    )
    share = result.scalar_one_or_none()
    if share is None:
        logger.info("Verification of unknown share %s", share_id)
        return VerificationResult(status=VerificationStatus.NOT_FOUND, checked_at=now)

    # Values needed after the commits below expire the loaded instances.
    share_id = share.id
    code_attempted = bool(supplied_access_code)

    status = failed_state(share, now)
    credential = None
    if status is None:
        credential = await get_credential(db, share.cred_id)
        if credential is None:
            # Deleting the credential revokes every share of it.
            status = VerificationStatus.REVOKED

    if status is None and share.access_code:
        logger.debug("Share %s in state %s", share_id, VerificationStatus.PENDING_ACCESS_CODE.value)
        if not access_code_matches(share.access_code, supplied_access_code):
            # A wrong or missing code never consumes a view.
            status = VerificationStatus.INVALID_ACCESS_CODE
            code_attempted = True

    if status is None:
        views_after = await consume_view(db, share_id, now)
        if views_after is None:
            # Lost a race against another verifier or the owner.
            await db.refresh(share)
            status = failed_state(share, now) or VerificationStatus.VIEWS_EXHAUSTED
        else:
            await db.refresh(share)
            await db.refresh(credential)
            credential_view, share_view = build_disclosure(share, credential, views_after)
            fraud_flags = ["high_views"] if views_after > settings.high_view_threshold else []
            outcome = VerificationResult(
                status=VerificationStatus.VERIFIED,
                checked_at=now,
                credential=credential_view,
                share=share_view,
                issuer_trusted=issuer_trusted(credential),
                fraud_flags=fraud_flags,
            )
            logger.info("Share %s verified (%d/%d views)", share_id, views_after, share_view["max_views"])
            await record_view(db, share_id, True, viewer, code_attempted)
            return outcome

    logger.info("Share %s verification failed: %s", share_id, status.value)
    await record_view(db, share_id, False, viewer, code_attempted)
    return VerificationResult(status=status, checked_at=now)
