from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class PolicyRequest(BaseModel):
    preset: str
    selected_fields: list[str] | None = Field(default=None, alias="selectedFields")
    field_visibility: dict[str, str] | None = Field(default=None, alias="fieldVisibility")

    model_config = {"populate_by_name": True}


class CreateShareRequest(BaseModel):
    # Left untyped so the issuer reports its own error codes for malformed values.
    cred_id: str = Field(alias="credId")
    policy: PolicyRequest
    expires_at: Any = Field(alias="expiresAt")
    max_views: Any = Field(alias="maxViews")
    access_code: Any = Field(default=None, alias="accessCode")

    model_config = {"populate_by_name": True}


class CreateShareResponse(BaseModel):
    id: str
    url: str
    qr_payload: str


class ShareResponse(BaseModel):
    id: str
    cred_id: str
    url: str
    policy: dict
    expires_at: datetime
    max_views: int
    views: int
    requires_access_code: bool
    revoked: bool
    created_at: datetime | None
