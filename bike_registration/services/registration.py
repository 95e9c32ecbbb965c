"""
Bike registration client.

POST /register with the full record; dates go out as ISO-8601 UTC timestamps.
  2xx     → {success, id?, message, payload?}
  non-2xx → {success: false, message, errors?}
"""

import logging
from datetime import date, datetime, time, timezone

import httpx
from pydantic import ValidationError

from bike_registration.schemas.registration import RegistrationRecord
from bike_registration.schemas.responses import RegistrationResponse
from bike_registration.services.http import post_json, read_json
from bike_registration.services.results import Ok, ServerError, ServiceResult, failure_for_status

logger = logging.getLogger(__name__)

REGISTER_ENDPOINT = "/register"
GENERIC_ERROR = "Registration failed. Please try again."


def to_iso_timestamp(value: date | None) -> str | None:
    """2024-05-01 → "2024-05-01T00:00:00.000Z"."""
    if value is None:
        return None
    moment = datetime.combine(value, time.min, tzinfo=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def serialize_registration(record: RegistrationRecord) -> dict:
    """Wire payload for the registration endpoint (camelCase keys)."""
    payload = record.model_dump(by_alias=True, mode="json")
    payload["dateOfPurchase"] = to_iso_timestamp(record.date_of_purchase)
    payload["dateOfBirth"] = to_iso_timestamp(record.date_of_birth)
    return payload


async def register_bike(
    record: RegistrationRecord,
    client: httpx.AsyncClient | None = None,
) -> ServiceResult:
    """Submit the registration; returns Ok(RegistrationResponse) or a Failure."""
    try:
        resp = await post_json(REGISTER_ENDPOINT, serialize_registration(record), client)
    except httpx.HTTPError as e:
        logger.error("Registration call failed: %s", e)
        return ServerError(GENERIC_ERROR)

    body = read_json(resp)
    if resp.is_success:
        try:
            result = RegistrationResponse.model_validate(body)
        except ValidationError as e:
            logger.error("Malformed registration response: %s", e)
            return ServerError(GENERIC_ERROR)
        logger.info("Registration accepted: id=%s, serial=%s", result.id, record.serial_number)
        return Ok(result)

    message = body.get("message") or GENERIC_ERROR
    errors = body.get("errors") if isinstance(body.get("errors"), dict) else {}
    logger.warning(
        "Registration rejected: serial=%s → %s (%s)",
        record.serial_number, resp.status_code, message,
    )
    return failure_for_status(resp.status_code, message, errors)
