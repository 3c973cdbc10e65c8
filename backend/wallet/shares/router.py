import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from wallet.auth.dependencies import get_current_user
from wallet.database import get_db
from wallet.errors import ShareError
from wallet.models import Share, User

from .schemas import CreateShareRequest, CreateShareResponse, ShareResponse
from .service import create_share, get_owned_share, list_shares, revoke_share, share_url

router = APIRouter(prefix="/shares", tags=["shares"])


def _http_error(exc: ShareError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail={"code": exc.code, "message": exc.message})


@router.post("", response_model=CreateShareResponse, status_code=201)
@router.post("/", response_model=CreateShareResponse, status_code=201, include_in_schema=False)
async def create(
    body: CreateShareRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        issued = await create_share(
            db,
            user,
            body.cred_id,
            body.policy.preset,
            body.expires_at,
            body.max_views,
            access_code=body.access_code,
            field_visibility=body.policy.field_visibility,
            selected_fields=body.policy.selected_fields,
        )
    except ShareError as exc:
        raise _http_error(exc) from exc
    return CreateShareResponse(id=issued.share.id, url=issued.url, qr_payload=issued.url)


@router.get("", response_model=list[ShareResponse])
@router.get("/", response_model=list[ShareResponse], include_in_schema=False)
async def list_all(
    cred_id: uuid.UUID | None = Query(default=None, alias="credId"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return [_to_response(s) for s in await list_shares(db, user, cred_id)]


@router.get("/{share_id}", response_model=ShareResponse)
async def get_share(
    share_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        share = await get_owned_share(db, user, share_id)
    except ShareError as exc:
        raise _http_error(exc) from exc
    return _to_response(share)


@router.delete("/{share_id}", status_code=204)
async def revoke(
    share_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        await revoke_share(db, user, share_id)
    except ShareError as exc:
        raise _http_error(exc) from exc


def _to_response(share: Share) -> ShareResponse:
    return ShareResponse(
        id=share.id,
        cred_id=str(share.cred_id),
        url=share_url(share.id),
        policy=share.policy,
        expires_at=share.expires_at,
        max_views=share.max_views,
        views=share.views,
        requires_access_code=bool(share.access_code),
        revoked=share.revoked,
        created_at=share.created_at,
    )
