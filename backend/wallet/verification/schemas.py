from pydantic import BaseModel, Field

from .engine import VerificationResult


class VerifyRequest(BaseModel):
    access_code: str | None = None


class VerifiedCredential(BaseModel):
    title: str | None
    issuer_name: str | None
    issuer_domain: str | None
    issued_date: str | None
    expires_at: str | None = None
    payload: dict


class VerifiedShare(BaseModel):
    created_at: str | None
    views: int
    max_views: int
    expires_at: str
    policy: dict


class VerifyResponse(BaseModel):
    status: str
    checked_at: str = Field(alias="checkedAt")
    credential: VerifiedCredential | None = None
    share: VerifiedShare | None = None
    issuer_trusted: bool | None = Field(default=None, alias="issuerTrusted")
    requires_access_code: bool | None = Field(default=None, alias="requiresAccessCode")
    fraud_flags: list[str] | None = Field(default=None, alias="fraudFlags")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_result(cls, result: VerificationResult) -> "VerifyResponse":
        response = cls(status=result.wire_status, checked_at=result.checked_at.isoformat() + "Z")
        if result.ok:
            response.credential = VerifiedCredential(**result.credential)
            response.share = VerifiedShare(**result.share)
            response.issuer_trusted = result.issuer_trusted
            response.fraud_flags = result.fraud_flags
        elif result.requires_access_code:
            response.requires_access_code = True
        return response

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
