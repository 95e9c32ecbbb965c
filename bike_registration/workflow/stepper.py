"""
Stepper — current step index plus per-step completion flags.

advance() only moves forward from a completed step; retreat() is always
allowed and never touches completion.
"""

from __future__ import annotations

import logging

from bike_registration.workflow.errors import StepIndexError

logger = logging.getLogger(__name__)


class Stepper:
    def __init__(self, step_count: int):
        if step_count < 1:
            raise ValueError("Stepper needs at least one step")
        self._count = step_count
        self._current = 0
        self._completion: dict[int, bool] = {}

    @property
    def current(self) -> int:
        return self._current

    @property
    def step_count(self) -> int:
        return self._count

    @property
    def is_terminal(self) -> bool:
        return self._current == self._count - 1

    @property
    def completion(self) -> dict[int, bool]:
        """Copy of the completion map, every index present."""
        return {i: self._completion.get(i, False) for i in range(self._count)}

    def is_complete(self, index: int) -> bool:
        self._check(index)
        return self._completion.get(index, False)

    def mark_complete(self, index: int, value: bool = True) -> None:
        self._check(index)
        self._completion[index] = value

    def advance(self) -> bool:
        """Move to the next step if the current one is complete."""
        if self.is_terminal or not self._completion.get(self._current, False):
            logger.debug("advance ignored at step %s", self._current)
            return False
        self._current += 1
        return True

    def retreat(self) -> bool:
        if self._current == 0:
            return False
        self._current -= 1
        return True

    def reset(self) -> None:
        self._current = 0
        self._completion.clear()

    def _check(self, index: int) -> None:
        if not 0 <= index < self._count:
            raise StepIndexError(f"Step index {index} out of range 0..{self._count - 1}")
