"""Pydantic schemas for the registration record and its collaborators."""

from bike_registration.schemas.registration import (
    COUNTRIES,
    FIELD_LABELS,
    FIELD_OPTIONS,
    GENDERS,
    LANGUAGES,
    MIN_PURCHASE_DATE,
    RECORD_FIELDS,
    BikeRegistration,
    RegistrationRecord,
    ValidationResult,
    validate_fields,
    validate_record,
)

__all__ = [
    "COUNTRIES",
    "FIELD_LABELS",
    "FIELD_OPTIONS",
    "GENDERS",
    "LANGUAGES",
    "MIN_PURCHASE_DATE",
    "RECORD_FIELDS",
    "BikeRegistration",
    "RegistrationRecord",
    "ValidationResult",
    "validate_fields",
    "validate_record",
]
