"""Disclosure policies: which payload fields a share reveals, masks or hides."""

from enum import Enum
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, Field

from wallet.errors import EmptyDisclosureError, InvalidPolicyError


class Preset(str, Enum):
    FULL = "full"
    LITE = "lite"
    CUSTOM = "custom"


class Visibility(str, Enum):
    VISIBLE = "visible"
    MASKED = "masked"
    HIDDEN = "hidden"


# Fields a "lite" share keeps visible; everything else is hidden.
ESSENTIAL_KEYWORDS: tuple[str, ...] = (
    "degree",
    "institution",
    "university",
    "year",
    "grade",
    "title",
    "name",
    "student_name",
)

MASK = "***"


class DisclosurePolicy(BaseModel):
    preset: Preset
    field_visibility: dict[str, Visibility] = Field(default_factory=dict, alias="fieldVisibility")
    selected_fields: list[str] = Field(default_factory=list, alias="selectedFields")

    model_config = {"populate_by_name": True, "frozen": True}

    def visibility_for(self, field_name: str) -> Visibility:
        """Visibility of a field, falling back to the preset default when unmapped."""
        if field_name in self.field_visibility:
            return self.field_visibility[field_name]
        return default_visibility(self.preset, field_name)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def is_essential(field_name: str) -> bool:
    lowered = field_name.lower()
    return any(keyword in lowered for keyword in ESSENTIAL_KEYWORDS)


def default_visibility(preset: Preset, field_name: str) -> Visibility:
    if preset is Preset.FULL:
        return Visibility.VISIBLE
    if preset is Preset.LITE:
        return Visibility.VISIBLE if is_essential(field_name) else Visibility.HIDDEN
    return Visibility.HIDDEN


def parse_preset(value: str | Preset) -> Preset:
    try:
        return Preset(value)
    except ValueError:
        raise InvalidPolicyError(f"Unknown disclosure preset: {value!r}") from None


def parse_visibility(value: str | Visibility) -> Visibility:
    try:
        return Visibility(value)
    except ValueError:
        raise InvalidPolicyError(f"Unknown field visibility: {value!r}") from None


def build_policy(
    preset: str | Preset,
    credential_fields: Iterable[str],
    overrides: Mapping[str, str | Visibility] | None = None,
    allow_empty: bool = False,
) -> DisclosurePolicy:
    """Build the per-field visibility map for a credential.

    ``overrides`` only apply to the ``custom`` preset, on top of an
    all-hidden baseline; overrides naming fields the credential does not
    carry are dropped. Raises ``EmptyDisclosureError`` when no field would be
    visible or masked, unless ``allow_empty`` is set (previews).
    """
    preset = parse_preset(preset)
    fields = list(dict.fromkeys(credential_fields))
    visibility = {name: default_visibility(preset, name) for name in fields}

    if preset is Preset.CUSTOM and overrides:
        for name, value in overrides.items():
            parsed = parse_visibility(value)
            if name in visibility:
                visibility[name] = parsed

    policy = DisclosurePolicy(
        preset=preset,
        field_visibility=visibility,
        selected_fields=[f for f, v in visibility.items() if v is not Visibility.HIDDEN],
    )
    if not policy.selected_fields and not allow_empty:
        raise EmptyDisclosureError("Please select at least one field to share")
    return policy


def mask_value(value: Any) -> str:
    """Keep the first and last two characters, star out the rest."""
    text = str(value)
    if len(text) <= 4:
        return MASK
    return text[:2] + "*" * (len(text) - 4) + text[-2:]


def apply_policy(policy: DisclosurePolicy, payload: Mapping[str, Any] | None) -> dict[str, Any]:
    """Filter a credential payload through a policy. Hidden fields are omitted."""
    filtered: dict[str, Any] = {}
    for name, value in (payload or {}).items():
        visibility = policy.visibility_for(name)
        if visibility is Visibility.VISIBLE:
            filtered[name] = value
        elif visibility is Visibility.MASKED:
            filtered[name] = mask_value(value)
    return filtered


def preview_field(policy: DisclosurePolicy, name: str, value: Any) -> Any:
    visibility = policy.visibility_for(name)
    if visibility is Visibility.VISIBLE:
        return value
    if visibility is Visibility.MASKED:
        return mask_value(value)
    return None
