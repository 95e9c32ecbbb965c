"""
Step definitions — the fixed, ordered list of workflow steps.

Flow:
  0. Serial Number (remote verification) → 1. Bike Information (local)
  → 2. Personal Information (submission) → 3. Confirmation (terminal)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from bike_registration.workflow.errors import StepIndexError


class StepGate(str, Enum):
    VERIFICATION = "VERIFICATION"  # remote serial check
    LOCAL = "LOCAL"                # owned fields must pass the schema
    SUBMISSION = "SUBMISSION"      # whole record valid, forward action submits
    TERMINAL = "TERMINAL"


@dataclass(frozen=True)
class StepDefinition:
    index: int
    key: str
    title: str
    fields: tuple[str, ...] = ()
    read_only_fields: tuple[str, ...] = ()
    gate: StepGate = StepGate.LOCAL

    @property
    def requires_verification(self) -> bool:
        return self.gate is StepGate.VERIFICATION

    @property
    def is_terminal(self) -> bool:
        return self.gate is StepGate.TERMINAL

    def owns(self, name: str) -> bool:
        return name in self.fields


STEPS: tuple[StepDefinition, ...] = (
    StepDefinition(
        index=0,
        key="serial_number",
        title="Serial number",
        fields=("serial_number",),
        gate=StepGate.VERIFICATION,
    ),
    StepDefinition(
        index=1,
        key="bike_information",
        title="Bike information",
        fields=("date_of_purchase",),
        read_only_fields=("serial_number", "model_description", "shop_name"),
        gate=StepGate.LOCAL,
    ),
    StepDefinition(
        index=2,
        key="personal_information",
        title="Personal information",
        fields=(
            "first_name",
            "last_name",
            "email",
            "country",
            "preferred_language",
            "gender",
            "date_of_birth",
            "news_opt_in",
            "consent",
        ),
        gate=StepGate.SUBMISSION,
    ),
    StepDefinition(
        index=3,
        key="confirmation",
        title="Registration confirmation",
        gate=StepGate.TERMINAL,
    ),
)

_FIELD_OWNER = {name: step for step in STEPS for name in step.fields}


def get_step(index: int) -> StepDefinition:
    if not 0 <= index < len(STEPS):
        raise StepIndexError(f"Step index {index} out of range 0..{len(STEPS) - 1}")
    return STEPS[index]


def step_for_field(name: str) -> StepDefinition | None:
    """Return the step that edits ``name``, or None for read-only/unknown fields."""
    return _FIELD_OWNER.get(name)


def _first_with_gate(gate: StepGate) -> StepDefinition:
    return next(step for step in STEPS if step.gate is gate)


def verification_step() -> StepDefinition:
    return _first_with_gate(StepGate.VERIFICATION)


def submission_step() -> StepDefinition:
    return _first_with_gate(StepGate.SUBMISSION)


def confirmation_step() -> StepDefinition:
    return _first_with_gate(StepGate.TERMINAL)
