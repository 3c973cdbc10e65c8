"""Credential storage access used by the sharing core.

Credential CRUD lives elsewhere; this module only exposes the lookups and
writes that share issuance, verification and archiving depend on.
"""

import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wallet.models import Credential, Share


def _as_uuid(value: uuid.UUID | str) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


async def get_credential(
    db: AsyncSession,
    credential_id: uuid.UUID | str,
    owner_id: uuid.UUID | None = None,
) -> Credential | None:
    """Active credential by id, optionally restricted to one owner."""
    cred_uuid = _as_uuid(credential_id)
    if cred_uuid is None:
        return None
    query = select(Credential).where(Credential.id == cred_uuid, Credential.deleted_at.is_(None))
    if owner_id is not None:
        query = query.where(Credential.user_id == owner_id)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def insert_credential(db: AsyncSession, owner_id: uuid.UUID, **fields) -> Credential:
    fields.setdefault("issuer_name", fields.get("issuer"))
    fields.setdefault("payload", {})
    credential = Credential(user_id=owner_id, **fields)
    db.add(credential)
    await db.commit()
    await db.refresh(credential)
    return credential


async def revoke_shares_for_credential(db: AsyncSession, credential_id: uuid.UUID) -> int:
    result = await db.execute(
        update(Share)
        .where(Share.cred_id == credential_id, Share.revoked.is_(False))
        .values(revoked=True, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


async def soft_delete_credential(
    db: AsyncSession,
    credential_id: uuid.UUID | str,
    owner_id: uuid.UUID,
) -> bool:
    """Move a credential to the trash and revoke every share pointing at it."""
    credential = await get_credential(db, credential_id, owner_id)
    if credential is None:
        return False
    credential.deleted_at = datetime.utcnow()
    await revoke_shares_for_credential(db, credential.id)
    await db.commit()
    return True
