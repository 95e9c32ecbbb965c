"""Thin JSON-over-HTTP helpers shared by the collaborator clients."""

import logging

import httpx

from bike_registration.config import settings

logger = logging.getLogger(__name__)


async def post_json(
    endpoint: str,
    payload: dict,
    client: httpx.AsyncClient | None = None,
) -> httpx.Response:
    """POST ``payload`` as JSON to the backend. Transport errors propagate."""
    url = f"{settings.API_BASE_URL}{endpoint}"
    if client is not None:
        return await client.post(url, json=payload)
    async with httpx.AsyncClient(timeout=settings.REQUEST_TIMEOUT) as session:
        return await session.post(url, json=payload)


def read_json(resp: httpx.Response) -> dict:
    """Decode a JSON object body, or {} when the body is not a JSON object."""
    try:
        body = resp.json()
    except ValueError:
        logger.warning("Non-JSON response from %s (status %s)", resp.request.url, resp.status_code)
        return {}
    return body if isinstance(body, dict) else {}
