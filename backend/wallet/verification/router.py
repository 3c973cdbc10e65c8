from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from wallet.analytics.recorder import viewer_context_from_request
from wallet.database import get_db

from .engine import verify
from .schemas import VerifyRequest, VerifyResponse

router = APIRouter(prefix="/v", tags=["verification"])


@router.post("/{share_id}", response_model=VerifyResponse, response_model_exclude_none=True)
async def verify_share(
    share_id: str,
    request: Request,
    body: VerifyRequest | None = None,
    db: AsyncSession = Depends(get_db),
):
    """Public endpoint — no auth required."""
    access_code = body.access_code if body else None
    result = await verify(db, share_id, access_code, viewer_context_from_request(request))
    return JSONResponse(VerifyResponse.from_result(result).to_wire(), status_code=result.http_status)


@router.get("/{share_id}", response_model=VerifyResponse, response_model_exclude_none=True)
async def verify_share_link(share_id: str, request: Request, db: AsyncSession = Depends(get_db)):
    """Plain link dereference; shares protected by an access code answer 401."""
    result = await verify(db, share_id, None, viewer_context_from_request(request))
    return JSONResponse(VerifyResponse.from_result(result).to_wire(), status_code=result.http_status)
