"""Shared fixtures: an in-process fake backend behind httpx.MockTransport."""

import json
from datetime import date

import httpx
import pytest

from bike_registration.workflow import RegistrationWorkflow

TODAY = date(2025, 6, 1)

BIKES = [
    {
        "serialNumber": "STM34D30L24110132N",
        "modelDescription": "Bike Spark RC World Cup (TW) IGPG/L",
        "shopName": "BMN SPORTECH",
    },
    {
        "serialNumber": "STR30A20L24110345N",
        "modelDescription": "Bike Solace Gravel 10 (EU) eRIDE HMX",
        "shopName": "Sports Megève",
    },
]


class FakeBackend:
    """Answers the two endpoints the way the real service does."""

    def __init__(self):
        self.requests: list[tuple[str, dict]] = []
        self.register_status = 201
        self.register_body = {"success": True, "id": "reg-001", "message": "Bike registered successfully"}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content or b"{}")
        self.requests.append((request.url.path, body))

        if request.url.path.endswith("/verify-serial-number"):
            serial = body.get("serialNumber")
            if not serial:
                return httpx.Response(400, json={"error": "serialNumber is required", "status_code": 400})
            for bike in BIKES:
                if bike["serialNumber"].lower() == serial.strip().lower():
                    return httpx.Response(200, json={"data": bike, "status_code": 200})
            return httpx.Response(404, json={
                "error": "Your Serial Number is wrong. Please check and try again.",
                "status_code": 404,
            })

        if request.url.path.endswith("/register"):
            return httpx.Response(self.register_status, json=self.register_body)

        return httpx.Response(404, json={"error": "Not found"})


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def client(backend):
    return httpx.AsyncClient(transport=httpx.MockTransport(backend))


@pytest.fixture
def workflow(client):
    return RegistrationWorkflow(client=client, today=TODAY)


def fill_personal_information(wf: RegistrationWorkflow, consent: bool = True) -> None:
    wf.update_field("first_name", "John")
    wf.update_field("last_name", "Doe")
    wf.update_field("email", "john@example.com")
    wf.update_field("country", "CH")
    wf.update_field("preferred_language", "en")
    wf.update_field("gender", "male")
    wf.update_field("date_of_birth", "1990-04-12")
    wf.update_field("news_opt_in", False)
    wf.update_field("consent", consent)
