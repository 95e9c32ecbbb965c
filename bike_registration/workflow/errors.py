"""Workflow exceptions — raised for caller mistakes, never for remote failures."""


class WorkflowError(Exception):
    """Base class for registration workflow errors."""


class StepIndexError(WorkflowError):
    """A step index outside the registry bounds was requested."""


class UnknownFieldError(WorkflowError):
    """A field name that no step edits was passed to ``update_field``."""


class InvalidFieldValueError(WorkflowError):
    """A value could not be coerced to the field's type."""

    def __init__(self, name: str, message: str):
        super().__init__(f"{name}: {message}")
        self.name = name
        self.message = message
