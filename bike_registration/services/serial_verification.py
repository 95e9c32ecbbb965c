"""
Serial number verification client.

POST /verify-serial-number {"serialNumber": ...}
  200 → {"data": {serialNumber, modelDescription, shopName}, "status_code": 200}
  404 / 400 / 500 → {"error": "...", "status_code": N}
"""

import logging

import httpx
from pydantic import ValidationError

from bike_registration.schemas.responses import BikeModel
from bike_registration.services.http import post_json, read_json
from bike_registration.services.results import Ok, ServerError, ServiceResult, failure_for_status

logger = logging.getLogger(__name__)

VERIFY_ENDPOINT = "/verify-serial-number"
GENERIC_ERROR = "Failed to verify serial number"


async def verify_serial_number(
    serial_number: str,
    client: httpx.AsyncClient | None = None,
) -> ServiceResult:
    """Look up a serial number; returns Ok(BikeModel) or a Failure."""
    try:
        resp = await post_json(VERIFY_ENDPOINT, {"serialNumber": serial_number}, client)
    except httpx.HTTPError as e:
        logger.error("Serial verification call failed: %s", e)
        return ServerError(GENERIC_ERROR)

    body = read_json(resp)
    if resp.status_code == 200:
        try:
            bike = BikeModel.model_validate(body.get("data") or {})
        except ValidationError as e:
            logger.error("Malformed verification payload: %s", e)
            return ServerError(GENERIC_ERROR)
        logger.info("Serial number verified: %s", bike.serial_number)
        return Ok(bike)

    message = body.get("error") or GENERIC_ERROR
    logger.warning("Serial verification rejected: %s → %s", serial_number, resp.status_code)
    return failure_for_status(resp.status_code, message)
