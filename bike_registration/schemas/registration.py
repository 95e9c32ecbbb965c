"""
Registration record and field schema.

The record is the single mutable object shared by every step. Validation runs
the record through a strict model and turns pydantic errors into a flat
field -> message mapping, so callers never see a raw ValidationError.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

from pydantic import BaseModel, ConfigDict, ValidationError, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError


# ── Constants ──────────────────────────────────────────────

EMAIL_RE = re.compile(r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$")

# Earliest purchase date we accept as plausible
MIN_PURCHASE_DATE = date(1990, 1, 1)

COUNTRIES = {
    "CH": "Switzerland",
    "FR": "France",
    "DE": "Germany",
    "IT": "Italy",
    "AT": "Austria",
    "ES": "Spain",
    "GB": "United Kingdom",
    "US": "United States",
}

LANGUAGES = {
    "en": "English",
    "de": "German",
    "fr": "French",
    "it": "Italian",
}

GENDERS = {
    "male": "Male",
    "female": "Female",
    "other": "Other",
}

FIELD_LABELS = {
    "serial_number": "Serial Number",
    "model_description": "Model Description",
    "shop_name": "Shop Name",
    "date_of_purchase": "Date of Purchase",
    "first_name": "First Name",
    "last_name": "Last Name",
    "email": "Email",
    "country": "Country",
    "preferred_language": "Preferred Language",
    "gender": "Gender",
    "date_of_birth": "Date of Birth",
    "news_opt_in": "News and Updates",
    "consent": "Privacy Policy",
}

# Fields that carry a fixed option list, keyed by field name
FIELD_OPTIONS = {
    "country": COUNTRIES,
    "preferred_language": LANGUAGES,
    "gender": GENDERS,
}


# ── Record ─────────────────────────────────────────────────

class RegistrationRecord(BaseModel):
    """All data collected across the workflow steps.

    Fields are lenient so a partially filled record is always representable.
    Assignment is validated for type coercion only (e.g. "2024-05-01" -> date);
    business rules live in ``validate_record``.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    serial_number: str = ""
    model_description: str = ""
    shop_name: str = ""
    date_of_purchase: date | None = None
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    country: str = ""
    preferred_language: str = ""
    gender: str = ""
    date_of_birth: date | None = None
    news_opt_in: bool = False
    consent: bool = False


RECORD_FIELDS: tuple[str, ...] = tuple(RegistrationRecord.model_fields)


# ── Strict schema ──────────────────────────────────────────

def _required(value: str, message: str) -> str:
    if not value or not value.strip():
        raise PydanticCustomError("required", message)
    return value.strip()


class BikeRegistration(RegistrationRecord):
    """Strict view of the record: every rule a submission must satisfy."""

    model_config = ConfigDict(validate_assignment=False, loc_by_alias=False)

    @field_validator("first_name")
    @classmethod
    def check_first_name(cls, v: str) -> str:
        return _required(v, "First name is required")

    @field_validator("last_name")
    @classmethod
    def check_last_name(cls, v: str) -> str:
        return _required(v, "Last name is required")

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        v = _required(v, "Email is required")
        if not EMAIL_RE.match(v):
            raise PydanticCustomError("email", "Please enter a valid email address")
        return v

    @field_validator("country")
    @classmethod
    def check_country(cls, v: str) -> str:
        if v not in COUNTRIES:
            raise PydanticCustomError("choice", "Please select your country")
        return v

    @field_validator("preferred_language")
    @classmethod
    def check_language(cls, v: str) -> str:
        if v not in LANGUAGES:
            raise PydanticCustomError("choice", "Please select your preferred language")
        return v

    @field_validator("gender")
    @classmethod
    def check_gender(cls, v: str) -> str:
        if v not in GENDERS:
            raise PydanticCustomError("choice", "Please select your gender")
        return v

    @field_validator("date_of_purchase")
    @classmethod
    def check_date_of_purchase(cls, v: date | None) -> date:
        if v is None:
            raise PydanticCustomError("required", "Date of purchase is required")
        if v < MIN_PURCHASE_DATE:
            raise PydanticCustomError(
                "date_range",
                "Date of purchase cannot be before {minimum}",
                {"minimum": MIN_PURCHASE_DATE.isoformat()},
            )
        return v

    @field_validator("date_of_birth")
    @classmethod
    def check_date_of_birth(cls, v: date | None, info: ValidationInfo) -> date:
        if v is None:
            raise PydanticCustomError("required", "Date of birth is required")
        today = (info.context or {}).get("today") or date.today()
        if v > today:
            raise PydanticCustomError("date_range", "Date of birth cannot be in the future")
        return v

    @field_validator("consent")
    @classmethod
    def check_consent(cls, v: bool) -> bool:
        if v is not True:
            raise PydanticCustomError("consent", "You must accept the privacy policy")
        return v


# ── Validation ─────────────────────────────────────────────

@dataclass(frozen=True)
class ValidationResult:
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def validate_record(record: RegistrationRecord, today: date | None = None) -> ValidationResult:
    """
    Check a (possibly partial) record against every field rule.

    Args:
        record: the record to check; it is not modified.
        today: reference date for "not in the future" checks, defaults to today.

    Returns:
        ValidationResult with one message per failing field (first error wins).
    """
    errors: dict[str, str] = {}
    try:
        BikeRegistration.model_validate(
            record.model_dump(),
            context={"today": today or date.today()},
        )
    except ValidationError as exc:
        for err in exc.errors():
            name = str(err["loc"][0]) if err["loc"] else "__root__"
            errors.setdefault(name, err["msg"])
    return ValidationResult(errors=errors)


def validate_fields(
    record: RegistrationRecord,
    names: Iterable[str],
    today: date | None = None,
) -> ValidationResult:
    """Same as ``validate_record`` but only reports the given fields."""
    wanted = set(names)
    result = validate_record(record, today=today)
    return ValidationResult(errors={k: v for k, v in result.errors.items() if k in wanted})
