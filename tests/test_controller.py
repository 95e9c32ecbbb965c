"""Tests for the async step controllers (collaborators stubbed with AsyncMock)."""

import asyncio
from datetime import date
from unittest.mock import AsyncMock

import pytest

from bike_registration.schemas.registration import RegistrationRecord
from bike_registration.schemas.responses import BikeModel, RegistrationResponse
from bike_registration.services.results import NotFound, Ok, ServerError, ValidationFailed
from bike_registration.workflow import (
    AsyncStepController,
    OperationState,
    OperationStatus,
    RegistrationSubmissionController,
    SerialVerificationController,
    Stepper,
)
from bike_registration.workflow.steps import STEPS, submission_step, verification_step

BIKE = BikeModel(
    serial_number="STM34D30L24110132N",
    model_description="Bike Spark RC World Cup (TW) IGPG/L",
    shop_name="BMN SPORTECH",
)


def _verification(call, record=None, stepper=None, errors=None):
    record = record or RegistrationRecord(serial_number="stm34d30l24110132n")
    stepper = stepper or Stepper(len(STEPS))
    errors = {} if errors is None else errors
    ctrl = SerialVerificationController(verification_step(), record, stepper, errors, call)
    return ctrl, record, stepper, errors


def _submission(call, stepper=None, errors=None):
    record = RegistrationRecord(first_name="John", date_of_birth=date(1990, 4, 12))
    if stepper is None:
        stepper = Stepper(len(STEPS))
        for i in (0, 1):
            stepper.mark_complete(i)
            stepper.advance()
    errors = {} if errors is None else errors
    ctrl = RegistrationSubmissionController(submission_step(), record, stepper, errors, call)
    return ctrl, record, stepper, errors


def test_operation_state_constructors():
    assert OperationState.idle().status is OperationStatus.IDLE
    assert OperationState.pending().is_pending
    assert OperationState.succeeded({"a": 1}).payload == {"a": 1}
    assert OperationState.failed("nope").error == "nope"


@pytest.mark.asyncio
async def test_verification_success_merges_exactly_three_fields():
    call = AsyncMock(return_value=Ok(BIKE))
    record = RegistrationRecord(serial_number="stm34d30l24110132n", first_name="Jane", consent=True)
    ctrl, record, stepper, errors = _verification(call, record=record)
    assert ctrl.state.status is OperationStatus.IDLE

    state = await ctrl.run()

    call.assert_awaited_once_with("stm34d30l24110132n")
    assert state.status is OperationStatus.SUCCEEDED
    assert state.payload == BIKE
    assert record.serial_number == "STM34D30L24110132N"
    assert record.model_description == BIKE.model_description
    assert record.shop_name == "BMN SPORTECH"
    assert record.first_name == "Jane"
    assert record.consent is True
    assert stepper.is_complete(0)
    assert stepper.current == 1
    assert errors == {}


@pytest.mark.asyncio
async def test_verification_failure_sets_field_error():
    call = AsyncMock(return_value=NotFound("Your Serial Number is wrong."))
    ctrl, record, stepper, errors = _verification(call)

    state = await ctrl.run()

    assert state.status is OperationStatus.FAILED
    assert state.error == "Your Serial Number is wrong."
    assert errors == {"serial_number": "Your Serial Number is wrong."}
    assert stepper.current == 0
    assert not stepper.is_complete(0)
    assert record.model_description == ""


@pytest.mark.asyncio
async def test_verification_retry_clears_previous_error_and_completion():
    call = AsyncMock(side_effect=[ServerError("Internal server error"), Ok(BIKE)])
    ctrl, record, stepper, errors = _verification(call)

    await ctrl.run()
    assert errors["serial_number"] == "Internal server error"
    state = await ctrl.run()
    assert state.status is OperationStatus.SUCCEEDED
    assert "serial_number" not in errors
    assert call.await_count == 2


@pytest.mark.asyncio
async def test_state_is_pending_while_call_in_flight():
    gate = asyncio.Event()

    async def slow(serial):
        await gate.wait()
        return Ok(BIKE)

    ctrl, _, stepper, _ = _verification(slow)
    stepper.mark_complete(0)
    task = asyncio.create_task(ctrl.run())
    await asyncio.sleep(0)
    assert ctrl.state.is_pending
    # re-trigger revokes the old completion up front
    assert not stepper.is_complete(0)
    gate.set()
    await task
    assert ctrl.state.status is OperationStatus.SUCCEEDED


@pytest.mark.asyncio
async def test_submission_success_records_confirmation_and_advances():
    response = RegistrationResponse(success=True, id="reg-1", message="Registered")
    call = AsyncMock(return_value=Ok(response))
    ctrl, record, stepper, _ = _submission(call)

    state = await ctrl.run()

    call.assert_awaited_once_with(record)
    assert state.status is OperationStatus.SUCCEEDED
    assert ctrl.confirmation.success is True
    assert ctrl.confirmation.message == "Registered"
    assert ctrl.confirmation.registration_id == "reg-1"
    assert stepper.current == 3


@pytest.mark.asyncio
async def test_submission_failure_still_advances():
    call = AsyncMock(return_value=ValidationFailed("duplicate registration", {"serialNumber": "taken"}))
    ctrl, _, stepper, errors = _submission(call)

    state = await ctrl.run()

    assert state.status is OperationStatus.FAILED
    assert ctrl.confirmation.success is False
    assert ctrl.confirmation.message == "duplicate registration"
    assert errors == {"serial_number": "taken"}
    assert stepper.is_complete(2)
    assert stepper.current == 3


@pytest.mark.asyncio
async def test_submission_2xx_with_success_false():
    call = AsyncMock(return_value=Ok(RegistrationResponse(success=False, message="Pending review")))
    ctrl, _, stepper, _ = _submission(call)
    await ctrl.run()
    assert ctrl.confirmation.success is False
    assert ctrl.confirmation.message == "Pending review"
    assert stepper.current == 3


@pytest.mark.asyncio
async def test_result_applied_without_advancing_when_user_moved_back():
    gate = asyncio.Event()

    async def slow(record):
        await gate.wait()
        return Ok(RegistrationResponse(success=True, message="ok"))

    ctrl, _, stepper, _ = _submission(slow)
    task = asyncio.create_task(ctrl.run())
    await asyncio.sleep(0)
    stepper.retreat()
    gate.set()
    await task

    assert stepper.current == 1
    assert stepper.is_complete(2)
    assert ctrl.confirmation.success is True


def test_base_controller_is_abstract():
    with pytest.raises(TypeError):
        AsyncStepController(verification_step(), RegistrationRecord(), Stepper(len(STEPS)), {}, AsyncMock())


@pytest.mark.asyncio
async def test_verification_call_raising_becomes_failure():
    call = AsyncMock(side_effect=RuntimeError("socket closed unexpectedly"))
    ctrl, _, stepper, errors = _verification(call)

    state = await ctrl.run()

    assert state.status is OperationStatus.FAILED
    assert state.error == "Failed to verify serial number"
    assert errors == {"serial_number": "Failed to verify serial number"}
    assert stepper.current == 0


@pytest.mark.asyncio
async def test_submission_call_raising_still_reaches_confirmation():
    call = AsyncMock(side_effect=RuntimeError("socket closed unexpectedly"))
    ctrl, _, stepper, _ = _submission(call)

    state = await ctrl.run()

    assert state.status is OperationStatus.FAILED
    assert ctrl.confirmation.success is False
    assert ctrl.confirmation.message == "Registration failed. Please try again."
    assert stepper.current == 3


@pytest.mark.asyncio
async def test_lookup_discarded_when_serial_edited_during_call():
    gate = asyncio.Event()

    async def slow(serial):
        await gate.wait()
        return Ok(BIKE)

    ctrl, record, stepper, _ = _verification(slow)
    task = asyncio.create_task(ctrl.run())
    await asyncio.sleep(0)
    record.serial_number = "SCR29A20M24110345N"
    gate.set()
    state = await task

    assert state.status is OperationStatus.IDLE
    assert record.serial_number == "SCR29A20M24110345N"
    assert record.model_description == ""
    assert not stepper.is_complete(0)
    assert stepper.current == 0


@pytest.mark.asyncio
async def test_failed_lookup_for_old_serial_sets_no_error():
    gate = asyncio.Event()

    async def slow(serial):
        await gate.wait()
        return NotFound("Your Serial Number is wrong.")

    ctrl, record, _, errors = _verification(slow)
    task = asyncio.create_task(ctrl.run())
    await asyncio.sleep(0)
    record.serial_number = "SCR29A20M24110345N"
    gate.set()
    state = await task

    assert state.status is OperationStatus.IDLE
    assert errors == {}
