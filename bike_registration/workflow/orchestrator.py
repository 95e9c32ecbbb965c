"""
Registration workflow — composes the record, schema, stepper and the two
async controllers into the operations a presentation layer calls.

Typical use:

    workflow = RegistrationWorkflow()
    workflow.update_field("serial_number", "STM34D30L24110132N")
    await workflow.trigger_verification()      # step 0 → 1 on success
    workflow.update_field("date_of_purchase", "2024-05-01")
    workflow.next()                            # step 1 → 2
    ...fill personal information...
    await workflow.trigger_submission()        # step 2 → 3, always
    workflow.confirmation
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Awaitable, Callable

import httpx
from pydantic import ValidationError

from bike_registration.schemas.registration import (
    FIELD_LABELS,
    FIELD_OPTIONS,
    RECORD_FIELDS,
    RegistrationRecord,
    ValidationResult,
    validate_fields,
    validate_record,
)
from bike_registration.services.registration import register_bike
from bike_registration.services.results import ServiceResult
from bike_registration.services.serial_verification import verify_serial_number
from bike_registration.workflow.controller import (
    VERIFIED_FIELDS,
    Confirmation,
    OperationState,
    RegistrationSubmissionController,
    SerialVerificationController,
)
from bike_registration.workflow.errors import InvalidFieldValueError, UnknownFieldError
from bike_registration.workflow.stepper import Stepper
from bike_registration.workflow.steps import (
    STEPS,
    StepDefinition,
    StepGate,
    get_step,
    step_for_field,
    submission_step,
    verification_step,
)

logger = logging.getLogger(__name__)

Listener = Callable[[tuple[str, ...]], None]


@dataclass(frozen=True)
class ActiveField:
    """One field of the current step, as a presentation layer needs it."""
    name: str
    label: str
    value: Any
    error: str | None = None
    read_only: bool = False
    options: dict[str, str] | None = None


class RegistrationWorkflow:
    """In-memory, single-user registration workflow."""

    def __init__(
        self,
        verify: Callable[..., Awaitable[ServiceResult]] = verify_serial_number,
        register: Callable[..., Awaitable[ServiceResult]] = register_bike,
        client: httpx.AsyncClient | None = None,
        today: date | None = None,
    ):
        self._verify = verify
        self._register = register
        self._client = client
        self._today = today
        self._listeners: list[Listener] = []
        self._build()

    def _build(self) -> None:
        self.record = RegistrationRecord()
        self.stepper = Stepper(len(STEPS))
        self._server_errors: dict[str, str] = {}
        self._validation = validate_record(self.record, today=self._today)
        self.verification = SerialVerificationController(
            verification_step(), self.record, self.stepper, self._server_errors,
            self._bind(self._verify),
        )
        self.submission = RegistrationSubmissionController(
            submission_step(), self.record, self.stepper, self._server_errors,
            self._bind(self._register),
        )

    def _bind(self, call):
        if self._client is None:
            return call
        return functools.partial(call, client=self._client)

    # ── Read side ─────────────────────────────────────────

    @property
    def current_step(self) -> StepDefinition:
        return get_step(self.stepper.current)

    @property
    def validation(self) -> ValidationResult:
        return self._validation

    @property
    def errors(self) -> dict[str, str]:
        """Schema errors overlaid with server-reported field errors."""
        merged = dict(self._validation.errors)
        merged.update(self._server_errors)
        return merged

    @property
    def confirmation(self) -> Confirmation | None:
        return self.submission.confirmation

    @property
    def is_busy(self) -> bool:
        return self.verification.state.is_pending or self.submission.state.is_pending

    def get_active_step_fields(self) -> list[ActiveField]:
        step = self.current_step
        errors = self.errors
        fields = [
            ActiveField(
                name=name,
                label=FIELD_LABELS[name],
                value=getattr(self.record, name),
                read_only=True,
            )
            for name in step.read_only_fields
        ]
        fields.extend(
            ActiveField(
                name=name,
                label=FIELD_LABELS[name],
                value=getattr(self.record, name),
                error=errors.get(name),
                options=FIELD_OPTIONS.get(name),
            )
            for name in step.fields
        )
        return fields

    def can_verify(self) -> bool:
        step = self.current_step
        return (
            step.requires_verification
            and bool(self.record.serial_number.strip())
            and not self.verification.state.is_pending
        )

    def can_advance(self) -> bool:
        """Whether the forward action of the current step is enabled.

        On the submission step this means "submit is allowed"; the move to
        confirmation itself happens in ``trigger_submission``.
        """
        step = self.current_step
        if not all(self.stepper.is_complete(i) for i in range(step.index)):
            return False
        if step.gate is StepGate.VERIFICATION:
            return self.stepper.is_complete(step.index)
        if step.gate is StepGate.LOCAL:
            if any(name in self._server_errors for name in step.fields):
                return False
            return validate_fields(self.record, step.fields, today=self._today).is_valid
        if step.gate is StepGate.SUBMISSION:
            return self._validation.is_valid and not self.submission.state.is_pending
        return False

    # ── Navigation ────────────────────────────────────────

    def next(self) -> bool:
        if not self.can_advance():
            return False
        step = self.current_step
        if step.gate is StepGate.LOCAL:
            self.stepper.mark_complete(step.index, True)
        elif step.gate is StepGate.SUBMISSION and not self.stepper.is_complete(step.index):
            logger.debug("next() on unsubmitted step %s ignored", step.index)
            return False
        moved = self.stepper.advance()
        if moved:
            self._notify(())
        return moved

    def prev(self) -> bool:
        moved = self.stepper.retreat()
        if moved:
            self._notify(())
        return moved

    # ── Mutation ──────────────────────────────────────────

    def update_field(self, name: str, value: Any) -> None:
        """Set one record field and re-run validation.

        Raises:
            UnknownFieldError: no step edits ``name``.
            InvalidFieldValueError: ``value`` cannot be coerced to the field type.
        """
        step = step_for_field(name)
        if step is None:
            raise UnknownFieldError(f"{name!r} is not an editable field")

        previous = getattr(self.record, name)
        try:
            setattr(self.record, name, value)
        except ValidationError as e:
            raise InvalidFieldValueError(name, e.errors()[0]["msg"]) from e

        self._server_errors.pop(name, None)
        if self.stepper.is_complete(step.index):
            if step.index != self.stepper.current:
                logger.info("Edit of %s invalidates completed step %s", name, step.index)
                self.stepper.mark_complete(step.index, False)
            elif step.requires_verification and getattr(self.record, name) != previous:
                # Verified details belong to the old serial number
                self.stepper.mark_complete(step.index, False)

        self._revalidate()
        self._notify((name,))

    async def trigger_verification(self) -> OperationState:
        if not self.can_verify():
            logger.warning("Verification trigger ignored on step %s", self.stepper.current)
            return self.verification.state
        state = await self.verification.run()
        self._revalidate()
        self._notify(VERIFIED_FIELDS)
        return state

    async def trigger_submission(self) -> OperationState:
        step = self.current_step
        if step.gate is not StepGate.SUBMISSION or not self.can_advance():
            logger.warning("Submission trigger ignored on step %s", step.index)
            return self.submission.state
        state = await self.submission.run()
        self._notify(())
        return state

    def reset(self) -> None:
        """Start over with an empty record. A call still in flight is dropped."""
        self._build()
        self._notify(RECORD_FIELDS)

    # ── Observation ───────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener(changed_fields)``; returns an unsubscribe callable.

        ``changed_fields`` is empty for navigation-only changes.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _revalidate(self) -> None:
        self._validation = validate_record(self.record, today=self._today)

    def _notify(self, changed: tuple[str, ...]) -> None:
        for listener in list(self._listeners):
            listener(changed)
