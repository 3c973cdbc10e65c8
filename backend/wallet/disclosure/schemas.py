from typing import Any

from pydantic import BaseModel, Field


class PreviewRequest(BaseModel):
    cred_id: str = Field(alias="credId")
    preset: str = "lite"
    field_visibility: dict[str, str] | None = Field(default=None, alias="fieldVisibility")

    model_config = {"populate_by_name": True}


class FieldPreview(BaseModel):
    field: str
    category: str
    sensitive: bool
    visibility: str
    preview: Any = None


class PreviewResponse(BaseModel):
    preset: str
    fields: list[FieldPreview]
    visible_count: int
    masked_count: int
    hidden_count: int
