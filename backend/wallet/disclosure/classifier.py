"""Field classification — keyword heuristics that group credential payload fields.

Classification is advisory: it drives UI grouping and the default ``lite``
visibility, never access control on its own.
"""

from enum import Enum
from typing import NamedTuple


class FieldCategory(str, Enum):
    PERSONAL = "personal"
    ACADEMIC = "academic"
    INSTITUTIONAL = "institutional"
    METADATA = "metadata"


# Checked in order; the first category with a matching keyword wins.
CATEGORY_KEYWORDS: dict[FieldCategory, tuple[str, ...]] = {
    FieldCategory.PERSONAL: ("name", "student_name", "email", "phone", "address", "dob", "gender"),
    FieldCategory.ACADEMIC: ("degree", "grade", "gpa", "marks", "course", "major", "specialization", "year"),
    FieldCategory.INSTITUTIONAL: ("institution", "university", "college", "school", "issuer"),
}

SENSITIVE_KEYWORDS: tuple[str, ...] = (
    "email",
    "phone",
    "address",
    "dob",
    "registration_number",
    "student_id",
)


class FieldClassification(NamedTuple):
    category: FieldCategory
    sensitive: bool


def _matches(field_name: str, keywords: tuple[str, ...]) -> bool:
    lowered = field_name.lower()
    return any(keyword in lowered for keyword in keywords)


def is_sensitive(field_name: str) -> bool:
    return _matches(field_name, SENSITIVE_KEYWORDS)


def classify(field_name: str) -> FieldClassification:
    """Assign a category and sensitivity flag to a payload field name."""
    category = FieldCategory.METADATA
    for candidate, keywords in CATEGORY_KEYWORDS.items():
        if _matches(field_name, keywords):
            category = candidate
            break
    return FieldClassification(category=category, sensitive=is_sensitive(field_name))
