from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from wallet.auth.dependencies import get_current_user
from wallet.database import get_db
from wallet.errors import NotFoundError
from wallet.models import User
from wallet.shares.service import get_owned_share

from .schemas import ShareAnalyticsResponse
from .service import share_analytics

router = APIRouter(prefix="/shares", tags=["analytics"])


@router.get("/{share_id}/analytics", response_model=ShareAnalyticsResponse)
async def get_analytics(
    share_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        share = await get_owned_share(db, user, share_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Share not found")
    return await share_analytics(db, share)
