from collections import Counter

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from wallet.auth.dependencies import get_current_user
from wallet.credentials.repository import get_credential
from wallet.database import get_db
from wallet.errors import ShareError
from wallet.models import User

from .classifier import classify
from .policy import build_policy, preview_field
from .schemas import FieldPreview, PreviewRequest, PreviewResponse

router = APIRouter(prefix="/disclosure", tags=["disclosure"])


@router.post("/preview", response_model=PreviewResponse)
async def preview(
    body: PreviewRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """What a verifier would see for each field under the requested policy."""
    credential = await get_credential(db, body.cred_id, owner_id=user.id)
    if credential is None:
        raise HTTPException(status_code=404, detail="Credential not found")

    payload = credential.payload or {}
    try:
        policy = build_policy(body.preset, payload.keys(), body.field_visibility, allow_empty=True)
    except ShareError as exc:
        raise HTTPException(status_code=exc.status_code, detail={"code": exc.code, "message": exc.message})

    fields = []
    for name, value in payload.items():
        classification = classify(name)
        fields.append(
            FieldPreview(
                field=name,
                category=classification.category.value,
                sensitive=classification.sensitive,
                visibility=policy.visibility_for(name).value,
                preview=preview_field(policy, name, value),
            )
        )

    counts = Counter(f.visibility for f in fields)
    return PreviewResponse(
        preset=policy.preset.value,
        fields=fields,
        visible_count=counts["visible"],
        masked_count=counts["masked"],
        hidden_count=counts["hidden"],
    )
