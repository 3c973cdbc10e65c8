from datetime import datetime

from pydantic import BaseModel


class ShareViewResponse(BaseModel):
    viewed_at: datetime | None
    country: str | None
    city: str | None
    device_type: str | None
    referrer_domain: str | None
    ok: bool
    access_code_attempt: bool

    model_config = {"from_attributes": True}


class ShareAnalyticsResponse(BaseModel):
    share_id: str
    views: int
    max_views: int
    expires_at: datetime
    total_views: int
    failed_attempts: int
    unique_viewers: int
    access_code_attempts: int
    countries: dict[str, int]
    devices: dict[str, int]
    recent_views: list[ShareViewResponse]
