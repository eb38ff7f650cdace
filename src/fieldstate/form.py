"""
Form: owner of the field registry, the lifecycle Effect Bus and the
host-rendering flag.

Fields are keyed by id (path, else name). The Form exclusively owns every
Field it creates; a Field only keeps the Form's opaque id plus a weak
reference to the commit hook below, so there is no ownership cycle.

The commit hook keeps form-level output in step with field state:
- value changed            -> form values updated, ON_FIELD_VALUE_CHANGE
- unmounted False -> True  -> contribution removed, ON_FIELD_UNMOUNT
- unmounted True -> False  -> contribution restored from the retained value
- any key changed          -> ON_FIELD_CHANGE

Form context:
    The enclosing form is found through a contextvar, the same way a UI
    framework injects it into a component tree:

    >>> form = create_form(initial_values={'email': 'a@b.c'})
    >>> with form_context(form):
    ...     binding = FieldBinding({'name': 'email'}, force_update=refresh)
"""
import contextvars
import copy
import logging
import types
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Dict, Generator, Mapping, Optional

from fieldstate.config import EngineConfig, FieldOptions, get_engine_config
from fieldstate.exceptions import FieldIdentityError, FormNotFoundError, UnknownFieldError
from fieldstate.field import Field
from fieldstate.lifecycle import EffectBus, EffectListener, LifeCycleTypes
from fieldstate.mutators import Mutators, create_base_mutators, validate_field
from fieldstate.snapshot_model import StateCommit, default_field_state
from fieldstate.validation import ValidateResult, Validator, default_validator

logger = logging.getLogger(__name__)

current_form: contextvars.ContextVar[Optional['Form']] = contextvars.ContextVar('current_form', default=None)


class Form:
    """Registry of Fields plus form-level lifecycle and rendering coordination.

    Thread safety: Not thread-safe (all operations expected on the host UI thread).
    """

    def __init__(
        self,
        initial_values: Optional[Mapping[str, Any]] = None,
        validator: Optional[Validator] = None,
        config: Optional[EngineConfig] = None,
        form_id: Optional[str] = None,
        effects: Optional[Callable[[EffectBus], None]] = None,
    ):
        """
        Args:
            initial_values: Field id -> value used when a field registers
                            without an explicit value.
            validator: Rule engine called as validator(value, rules, state).
            config: Per-form EngineConfig; falls back to the process default.
            form_id: Opaque id handed to Fields. Generated when omitted.
            effects: Called once with the Effect Bus to install listeners
                     before ON_FORM_INIT fires.
        """
        self.id = form_id or f"form-{uuid.uuid4().hex[:8]}"
        self.validator: Validator = validator or default_validator
        self._config = config
        self._initial_values: Dict[str, Any] = copy.deepcopy(dict(initial_values or {}))
        self._fields: Dict[str, Field] = {}
        self._values: Dict[str, Any] = {}
        self._host_rendering = False
        self.effects = EffectBus(owner=self.id)

        if effects is not None:
            effects(self.effects)
        self.notify(LifeCycleTypes.ON_FORM_INIT, self)

    def __repr__(self) -> str:
        return f"Form({self.id!r}, fields={len(self._fields)})"

    @property
    def config(self) -> EngineConfig:
        return self._config or get_engine_config()

    # ========== FIELD REGISTRY ==========

    def register_field(self, options: Any) -> Field:
        """Return the Field for ``options``, creating it on first registration.

        Re-registering an id returns the existing Field untouched, so state
        (e.g. an entered value) survives a view remount.

        Raises:
            FieldIdentityError: options carry neither name nor path.
        """
        options = FieldOptions.coerce(options)
        field_id = options.field_id
        if field_id is None:
            raise FieldIdentityError("Field options must provide a name or a path")

        existing = self._fields.get(field_id)
        if existing is not None:
            logger.debug(f"Reusing field {field_id!r} in {self.id!r}")
            return existing

        field = Field(
            field_id,
            self._initial_state(field_id, options),
            form_id=self.id,
            on_commit=self._handle_field_commit,
        )
        self._fields[field_id] = field
        self._values[field_id] = copy.deepcopy(field.state.get('value'))
        logger.debug(f"Registered field {field_id!r} in {self.id!r}")
        self.notify(LifeCycleTypes.ON_FIELD_INIT, field)
        return field

    def _initial_state(self, field_id: str, options: FieldOptions) -> Dict[str, Any]:
        initial_value = options.initial_value
        if initial_value is None:
            initial_value = self._initial_values.get(field_id)
        value = options.value if options.value is not None else initial_value

        state = default_field_state(
            name=options.name if options.name is not None else field_id,
            path=options.path if options.path is not None else field_id,
            value=copy.deepcopy(value),
            initial_value=copy.deepcopy(initial_value),
            props=copy.deepcopy(options.props),
            rules=list(options.rules),
            required=options.required,
            editable=options.editable,
            visible=options.visible,
            display=options.display,
        )
        # Framework-opaque extensions never shadow engine keys
        for key, extra in options.extra.items():
            state.setdefault(key, copy.deepcopy(extra))
        return state

    def get_field(self, field_id: str) -> Optional[Field]:
        return self._fields.get(field_id)

    def has_field(self, field_id: str) -> bool:
        return field_id in self._fields

    @property
    def fields(self) -> Mapping[str, Field]:
        return types.MappingProxyType(self._fields)

    def remove_field(self, field_id: str) -> bool:
        """Remove a field from the form, dropping its state and contribution."""
        field = self._fields.pop(field_id, None)
        if field is None:
            return False
        self._values.pop(field_id, None)
        field.dispose()
        logger.debug(f"Removed field {field_id!r} from {self.id!r}")
        self.notify(LifeCycleTypes.ON_FIELD_REMOVE, field)
        return True

    def _require_owned(self, field: Field) -> Field:
        if self._fields.get(field.id) is not field:
            raise UnknownFieldError(field.id)
        return field

    # ========== MUTATORS ==========

    def create_mutators(self, field: Field) -> Mutators:
        """Base mutators for a field this form owns."""
        return create_base_mutators(self, self._require_owned(field))

    # ========== LIFECYCLE ==========

    def notify(self, event_type: Any, payload: Any = None) -> int:
        """Broadcast a lifecycle event to form-level listeners."""
        return self.effects.notify(event_type, payload)

    def add_effect(self, callback: EffectListener, event_type: Any = None) -> None:
        self.effects.add_listener(callback, event_type)

    def remove_effect(self, callback: EffectListener, event_type: Any = None) -> None:
        self.effects.remove_listener(callback, event_type)

    def _handle_field_commit(self, field: Field, commit: StateCommit) -> None:
        """Keep form values in step with a field commit (runs before subscribers)."""
        if field.id not in self._fields:
            return
        current = commit.current

        if commit.has_changed('unmounted'):
            if current.get('unmounted'):
                self._values.pop(field.id, None)
                logger.debug(f"Field {field.id!r} unmounted; contribution removed")
                self.notify(LifeCycleTypes.ON_FIELD_UNMOUNT, field)
            else:
                self._values[field.id] = copy.deepcopy(current.get('value'))
                logger.debug(f"Field {field.id!r} remounted; contribution restored")

        if commit.has_changed('value') and not current.get('unmounted'):
            self._values[field.id] = copy.deepcopy(current.get('value'))
            self.notify(LifeCycleTypes.ON_FIELD_VALUE_CHANGE, field)

        if commit.changed_keys:
            self.notify(LifeCycleTypes.ON_FIELD_CHANGE, field)

    # ========== HOST RENDERING ==========

    def is_host_rendering(self) -> bool:
        """True while the host UI already has a re-render in flight."""
        return self._host_rendering

    def set_host_rendering(self, rendering: bool) -> None:
        self._host_rendering = bool(rendering)

    @contextmanager
    def host_rendering(self, rendering: bool = True) -> Generator[None, None, None]:
        """Set the host-rendering flag for the duration of the block.

        Nested blocks restore the previous value on exit.
        """
        previous = self._host_rendering
        self._host_rendering = rendering
        try:
            yield
        finally:
            self._host_rendering = previous

    # ========== VALUES ==========

    def get_values(self) -> Dict[str, Any]:
        """Contributions of every field that is not unmounted."""
        return copy.deepcopy(self._values)

    @property
    def values(self) -> Dict[str, Any]:
        return self.get_values()

    def set_values(self, values: Mapping[str, Any]) -> None:
        """Replace the value of each registered field named in ``values``."""
        for field_id, value in values.items():
            field = self._fields.get(field_id)
            if field is None:
                logger.debug(f"set_values: no field {field_id!r} in {self.id!r}")
                continue
            field.set_state(lambda state, value=value: state.__setitem__('value', value))

    def validate(self) -> Dict[str, ValidateResult]:
        """Validate every field that is not unmounted, without raising."""
        results: Dict[str, ValidateResult] = {}
        for field_id, field in list(self._fields.items()):
            if field.state.get('unmounted'):
                continue
            results[field_id] = validate_field(self, field, throw_errors=False)
        return results


def create_form(**options: Any) -> Form:
    """Factory for Form; accepts the same keyword arguments."""
    return Form(**options)


@contextmanager
def form_context(form: Form) -> Generator[Form, None, None]:
    """Make ``form`` the enclosing form for bindings created inside the block."""
    token = current_form.set(form)
    try:
        yield form
    finally:
        current_form.reset(token)


def get_current_form(required: bool = True) -> Optional[Form]:
    """The enclosing form, if any.

    Raises:
        FormNotFoundError: ``required`` and no form_context() is active.
    """
    form = current_form.get()
    if form is None and required:
        raise FormNotFoundError()
    return form
