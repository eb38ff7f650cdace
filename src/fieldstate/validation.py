"""
Validation request/result plumbing.

Rule execution belongs to whatever validator the Form is given; the engine only
asks for a verdict and stores it in field state. default_validator covers the
two checks every form needs (``required`` and plain callable rules) and leaves
declarative rule objects to external validators.
"""
from collections.abc import Mapping
from dataclasses import dataclass
import logging
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from fieldstate.config import get_engine_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidateResult:
    """Outcome of validating one field."""
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def invalid(self) -> bool:
        return bool(self.errors)

    def as_state(self) -> dict:
        """State keys written back to the field."""
        return {
            'errors': list(self.errors),
            'warnings': list(self.warnings),
            'valid': self.valid,
            'invalid': self.invalid,
            'validating': False,
        }


Validator = Callable[[Any, Sequence[Any], Any], Any]


def _messages(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,) if value else ()
    return tuple(str(v) for v in value if v)


def normalize_result(raw: Any) -> ValidateResult:
    """Coerce what a validator returned into a ValidateResult.

    Accepts a ValidateResult, a mapping with ``errors``/``warnings``, a
    sequence of error messages, a single message, or None (valid).
    """
    if isinstance(raw, ValidateResult):
        return raw
    if isinstance(raw, Mapping):
        return ValidateResult(errors=_messages(raw.get('errors')), warnings=_messages(raw.get('warnings')))
    if raw is None or isinstance(raw, (str, list, tuple)):
        return ValidateResult(errors=_messages(raw))
    raise TypeError(f"Validator returned unsupported result type {type(raw).__name__}")


def is_empty(value: Any) -> bool:
    if value is None or value == "":
        return True
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def default_validator(value: Any, rules: Iterable[Any], state: Any) -> ValidateResult:
    """Built-in validator: ``required`` plus callable rules.

    A callable rule receives the value and returns an error message or None.
    """
    errors: List[str] = []
    if state.get('required') and is_empty(value):
        errors.append(get_engine_config().required_message)

    for rule in rules or ():
        if callable(rule):
            message = rule(value)
            if message:
                errors.append(str(message))
        else:
            logger.debug(f"default_validator: skipping non-callable rule {rule!r}")
    return ValidateResult(errors=tuple(errors))


def run_validator(validator: Validator, state: Any, field_id: Optional[str] = None) -> ValidateResult:
    """Run ``validator`` against a state snapshot. Faults become errors."""
    try:
        raw = validator(state.get('value'), list(state.get('rules') or ()), state)
        return normalize_result(raw)
    except Exception as e:
        logger.warning(f"Validator failed for field {field_id!r}: {e}", exc_info=True)
        return ValidateResult(errors=(str(e) or type(e).__name__,))
