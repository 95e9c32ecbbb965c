from bike_registration.workflow.controller import (
    AsyncStepController,
    Confirmation,
    OperationState,
    OperationStatus,
    RegistrationSubmissionController,
    SerialVerificationController,
)
from bike_registration.workflow.errors import (
    InvalidFieldValueError,
    StepIndexError,
    UnknownFieldError,
    WorkflowError,
)
from bike_registration.workflow.orchestrator import ActiveField, RegistrationWorkflow
from bike_registration.workflow.stepper import Stepper
from bike_registration.workflow.steps import STEPS, StepDefinition, StepGate

__all__ = [
    "AsyncStepController", "Confirmation", "OperationState", "OperationStatus",
    "RegistrationSubmissionController", "SerialVerificationController",
    "InvalidFieldValueError", "StepIndexError", "UnknownFieldError", "WorkflowError",
    "ActiveField", "RegistrationWorkflow", "Stepper",
    "STEPS", "StepDefinition", "StepGate",
]
