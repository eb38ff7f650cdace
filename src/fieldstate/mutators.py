"""
Mutator Factory.

Mutators are the externally callable operations bound to one field. The base
set comes from Form.create_mutators(); a binding then layers two fixed hooks on
top with extend_mutators():

- change transform: get_value_from_event (optional) rewrites the first
  argument, then normalize_value maps every argument to its stored shape
- blur trigger: after the base blur, validate without raising when the field's
  trigger type is "onBlur"

Mutators are values: extending returns a new instance, and a binding rebuilds
them whenever the field identity (name/path) or its trigger type changes.
"""
from collections.abc import Mapping
from dataclasses import dataclass, replace
import logging
from typing import TYPE_CHECKING, Any, Callable, Optional

from fieldstate.config import FieldOptions, TriggerType
from fieldstate.exceptions import ValidationError
from fieldstate.lifecycle import LifeCycleTypes
from fieldstate.state_store import values_differ
from fieldstate.validation import ValidateResult, run_validator

if TYPE_CHECKING:
    from fieldstate.field import Field
    from fieldstate.form import Form

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class Mutators:
    """Bound mutation surface of one field."""
    change: Callable[..., None]
    focus: Callable[[], None]
    blur: Callable[[], None]
    validate: Callable[..., ValidateResult]
    reset: Callable[..., None]


def _read(obj: Any, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key, _MISSING)
    return getattr(obj, key, _MISSING)


def get_value_from_event(event: Any) -> Any:
    """Turn an input event into a value; non-events pass through unchanged.

    An event is anything with a ``target`` (attribute or mapping key).
    Checkbox targets yield ``checked``, everything else yields ``value``.
    """
    if event is None or isinstance(event, (str, bytes, int, float, bool)):
        return event
    target = _read(event, 'target')
    if target is _MISSING or target is None:
        return event
    if _read(target, 'type') == 'checkbox':
        checked = _read(target, 'checked')
        return bool(checked) if checked is not _MISSING else False
    value = _read(target, 'value')
    return None if value is _MISSING else value


def validate_field(form: 'Form', field: 'Field', throw_errors: bool = True) -> ValidateResult:
    """Run the form's validator for ``field`` and store the verdict in its state.

    Validator faults are recorded as errors. ValidationError is raised only
    with ``throw_errors=True``, after the result is stored.
    """
    field.set_state({'validating': True}, notify=False)
    form.notify(LifeCycleTypes.ON_FIELD_VALIDATE_START, field)

    result = run_validator(form.validator, field.get_state(), field.id)
    field.set_state(result.as_state())
    form.notify(LifeCycleTypes.ON_FIELD_VALIDATE_END, field)

    if result.invalid:
        logger.debug(f"Field {field.id!r} invalid: {list(result.errors)}")
        if throw_errors:
            raise ValidationError(field.id, result)
    return result


def create_base_mutators(form: 'Form', field: 'Field') -> Mutators:
    """Base mutation primitives for ``field`` inside ``form``."""

    def change(*args: Any) -> None:
        value = args[0] if args else None
        previous = field.get_state().get('value')

        def apply(state):
            state.value = value
            state.modified = True
            state.pristine = not values_differ(state.get('initial_value'), value)

        field.set_state(apply)
        if values_differ(previous, value):
            form.notify(LifeCycleTypes.ON_FIELD_INPUT_CHANGE, field)

    def focus() -> None:
        field.set_state({'active': True})
        form.notify(LifeCycleTypes.ON_FIELD_FOCUS, field)

    def blur() -> None:
        field.set_state({'active': False, 'visited': True})
        form.notify(LifeCycleTypes.ON_FIELD_BLUR, field)

    def validate(throw_errors: bool = True) -> ValidateResult:
        return validate_field(form, field, throw_errors=throw_errors)

    def reset(validate: bool = False) -> None:
        def apply(state):
            state.value = state.get('initial_value')
            state.errors = []
            state.warnings = []
            state.valid = True
            state.invalid = False
            state.active = False
            state.visited = False
            state.modified = False
            state.pristine = True

        field.set_state(apply)
        if validate:
            validate_field(form, field, throw_errors=False)

    return Mutators(change=change, focus=focus, blur=blur, validate=validate, reset=reset)


def extend_mutators(mutators: Mutators, options: Any, trigger_type: Optional[str] = None) -> Mutators:
    """Compose the change-transform and blur-trigger hooks onto ``mutators``.

    Args:
        mutators: Base (or previously extended) mutators; left untouched.
        options: FieldOptions or mapping carrying get_value_from_event,
                 normalize_value and trigger_type.
        trigger_type: Overrides the options' trigger type.
    """
    options = FieldOptions.coerce(options)
    extract = options.get_value_from_event
    normalize = options.normalize_value or get_value_from_event
    trigger = trigger_type or options.resolved_trigger_type()

    def change(*args: Any) -> None:
        args = list(args)
        if callable(extract):
            first = extract(*args)
            args = [first] + args[1:]
        mutators.change(*[normalize(arg) for arg in args])

    def blur() -> None:
        mutators.blur()
        if trigger == TriggerType.ON_BLUR:
            mutators.validate(throw_errors=False)

    return replace(mutators, change=change, blur=blur)
