"""
Async step controllers — one network-bound action per gated step.

Lifecycle of an action:
  IDLE → PENDING (trigger) → SUCCEEDED(payload) | FAILED(message)
  FAILED → PENDING again on retry. Nothing is retried automatically.

Remote failures arrive as result objects from the service layer and are
turned into state here; they never propagate as exceptions.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

from pydantic.alias_generators import to_snake

from bike_registration.schemas.registration import RECORD_FIELDS, RegistrationRecord
from bike_registration.schemas.responses import BikeModel, RegistrationResponse
from bike_registration.services import registration as registration_service
from bike_registration.services import serial_verification
from bike_registration.services.results import Failure, Ok, ServerError, ServiceResult
from bike_registration.workflow.stepper import Stepper
from bike_registration.workflow.steps import StepDefinition

logger = logging.getLogger(__name__)

# Fields a successful verification copies into the record
VERIFIED_FIELDS = ("serial_number", "model_description", "shop_name")


class OperationStatus(str, Enum):
    IDLE = "IDLE"
    PENDING = "PENDING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class OperationState:
    status: OperationStatus = OperationStatus.IDLE
    payload: Any = None
    error: str | None = None

    @classmethod
    def idle(cls) -> OperationState:
        return cls()

    @classmethod
    def pending(cls) -> OperationState:
        return cls(OperationStatus.PENDING)

    @classmethod
    def succeeded(cls, payload: Any) -> OperationState:
        return cls(OperationStatus.SUCCEEDED, payload=payload)

    @classmethod
    def failed(cls, message: str) -> OperationState:
        return cls(OperationStatus.FAILED, error=message)

    @property
    def is_pending(self) -> bool:
        return self.status is OperationStatus.PENDING


@dataclass(frozen=True)
class Confirmation:
    """Outcome shown on the confirmation step."""
    success: bool
    message: str
    registration_id: str | None = None


class AsyncStepController(ABC):
    """Base controller: owns the OperationState of one gated step.

    The controller does not deduplicate triggers; callers must not start a
    second run while ``state.is_pending``.
    """

    # Reported when the call raises instead of returning a result
    error_message = "Request failed"

    def __init__(
        self,
        step: StepDefinition,
        record: RegistrationRecord,
        stepper: Stepper,
        server_errors: dict[str, str],
        call: Callable[..., Awaitable[ServiceResult]],
    ):
        self.step = step
        self._record = record
        self._stepper = stepper
        self._server_errors = server_errors
        self._call = call
        self._state = OperationState.idle()

    @property
    def state(self) -> OperationState:
        return self._state

    async def run(self) -> OperationState:
        self._before_call()
        self._state = OperationState.pending()
        try:
            result = await self._invoke()
        except Exception:
            logger.exception("Step %s call raised", self.step.index)
            result = ServerError(self.error_message)
        # Everything below runs without yielding to the loop.
        if isinstance(result, Ok):
            self._on_success(result.payload)
        else:
            self._on_failure(result)
        return self._state

    @abstractmethod
    async def _invoke(self) -> ServiceResult:
        ...

    def _before_call(self) -> None:
        pass

    @abstractmethod
    def _on_success(self, payload: Any) -> None:
        ...

    @abstractmethod
    def _on_failure(self, failure: Failure) -> None:
        ...

    def _complete_and_advance(self) -> None:
        """Mark the owning step complete; move forward only if the user is still on it."""
        self._stepper.mark_complete(self.step.index, True)
        if self._stepper.current == self.step.index:
            self._stepper.advance()
        else:
            logger.info(
                "Step %s resolved while user is on step %s; not advancing",
                self.step.index, self._stepper.current,
            )


class SerialVerificationController(AsyncStepController):
    """Serial number lookup for the verification step."""

    error_message = serial_verification.GENERIC_ERROR

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._requested: str | None = None

    async def _invoke(self) -> ServiceResult:
        self._requested = self._record.serial_number
        return await self._call(self._requested)

    def _before_call(self) -> None:
        self._stepper.mark_complete(self.step.index, False)
        self._server_errors.pop("serial_number", None)

    def _is_stale(self) -> bool:
        """The serial was edited while the lookup was in flight."""
        if self._record.serial_number == self._requested:
            return False
        logger.info("Discarding lookup for %s, serial changed meanwhile", self._requested)
        self._state = OperationState.idle()
        return True

    def _on_success(self, payload: BikeModel) -> None:
        if self._is_stale():
            return
        for name in VERIFIED_FIELDS:
            setattr(self._record, name, getattr(payload, name))
        self._state = OperationState.succeeded(payload)
        self._complete_and_advance()

    def _on_failure(self, failure: Failure) -> None:
        if self._is_stale():
            return
        logger.info("Serial verification failed: %s", failure.message)
        self._server_errors["serial_number"] = failure.message
        self._state = OperationState.failed(failure.message)


class RegistrationSubmissionController(AsyncStepController):
    """Final submission; always lands on the confirmation step."""

    error_message = registration_service.GENERIC_ERROR

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.confirmation: Confirmation | None = None

    async def _invoke(self) -> ServiceResult:
        return await self._call(self._record)

    def _on_success(self, payload: RegistrationResponse) -> None:
        self.confirmation = Confirmation(
            success=payload.success,
            message=payload.message,
            registration_id=payload.id,
        )
        self._state = OperationState.succeeded(payload)
        self._complete_and_advance()

    def _on_failure(self, failure: Failure) -> None:
        logger.info("Registration failed: %s", failure.message)
        for key, detail in failure.errors.items():
            name = to_snake(key)
            if name in RECORD_FIELDS:
                self._server_errors[name] = str(detail)
        self.confirmation = Confirmation(success=False, message=failure.message)
        self._state = OperationState.failed(failure.message)
        self._complete_and_advance()
