"""Exceptions raised by the field-state engine."""
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from fieldstate.validation import ValidateResult


class FieldStateError(Exception):
    """Base class for all engine errors."""


class FormNotFoundError(FieldStateError):
    """Raised when a binding is constructed with no enclosing Form."""

    def __init__(self, message: str = "Form object cannot be found from context."):
        super().__init__(message)


class FieldIdentityError(FieldStateError):
    """Raised when field options carry neither a name nor a path."""


class UnknownFieldError(FieldStateError, KeyError):
    """Raised when a Form is asked about a field it does not own."""

    def __init__(self, field_id: Any):
        self.field_id = field_id
        super().__init__(f"Field {field_id!r} is not registered with this form")

    def __str__(self) -> str:
        return self.args[0]


class ValidationError(FieldStateError):
    """Raised by ``validate(throw_errors=True)`` when a field has errors.

    The result is already stored in field state when this is raised.
    """

    def __init__(self, field_id: str, result: 'ValidateResult', message: Optional[str] = None):
        self.field_id = field_id
        self.result = result
        super().__init__(message or f"Field {field_id!r} failed validation: {list(result.errors)}")
