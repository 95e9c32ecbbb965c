"""Pydantic schemas for collaborator responses."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BikeModel(BaseModel):
    """Bike details returned by a successful serial number lookup."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    serial_number: str
    model_description: str
    shop_name: str


class RegistrationResponse(BaseModel):
    """Body of a 2xx answer from the registration endpoint."""
    success: bool
    id: str | None = None
    message: str = ""
    payload: Any = None
