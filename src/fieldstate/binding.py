"""
Framework-agnostic field binding.

FieldBinding drives the engine the way a component hook does, minus any UI
framework: the host calls render() on every render cycle, mount() once the view
is attached and unmount() before it goes away, and supplies a force_update
callback the binding uses to request a refresh.

Sequence per binding instance:
    construct -> register field, subscribe, allocate cache slot, build mutators
    render()  -> diff allow-listed options against the slot's baseline
    mount()   -> mounted=True (notify only if the field was previously unmounted)
    unmount() -> drop slot, unsubscribe, unmounted=True (always notifies)
"""
import copy
import logging
from typing import Any, Callable, Optional

from fieldstate.cache import SlotId, inspect_changed, new_slot_id, project
from fieldstate.config import FieldOptions, TriggerType
from fieldstate.field import Field
from fieldstate.form import Form, get_current_form
from fieldstate.lifecycle import LifeCycleTypes
from fieldstate.mutators import Mutators, extend_mutators
from fieldstate.snapshot_model import FieldState, StateCommit

logger = logging.getLogger(__name__)


def _mark_mounted(state) -> None:
    state.mounted = True


def _mark_unmounted(state) -> None:
    state.unmounted = True


class FieldBinding:
    """One view's attachment to a Field."""

    def __init__(self, options: Any, force_update: Callable[[], None], form: Optional[Form] = None):
        """
        Args:
            options: FieldOptions or mapping (name/path, props, rules, ...).
            force_update: Called to request a view refresh.
            form: Owning form; defaults to the enclosing form_context().

        Raises:
            FormNotFoundError: no form given and none in context.
        """
        self._form = form if form is not None else get_current_form(required=True)
        self._options = copy.copy(FieldOptions.coerce(options))
        self._force_update = force_update
        self._field: Optional[Field] = None
        self._subscriber_id: Optional[int] = None
        self._slot_id: Optional[SlotId] = None
        self._trigger_type: Optional[str] = None
        self._attached = False
        self._mounted = False
        self._unmounted = False
        self._mutators = self._create_mutators()

    def __repr__(self) -> str:
        return f"FieldBinding({self.field.id!r}, slot={self._slot_id!r}, unmounted={self._unmounted})"

    # === Accessors ===

    @property
    def form(self) -> Form:
        return self._form

    @property
    def field(self) -> Field:
        assert self._field is not None
        return self._field

    @property
    def state(self) -> FieldState:
        return self.field.get_state()

    @property
    def props(self) -> Any:
        return self.state.get('props')

    @property
    def mutators(self) -> Mutators:
        return self._mutators

    @property
    def options(self) -> FieldOptions:
        return self._options

    @property
    def slot_id(self) -> Optional[SlotId]:
        return self._slot_id

    @property
    def subscriber_id(self) -> Optional[int]:
        return self._subscriber_id

    @property
    def unmounted(self) -> bool:
        return self._unmounted

    # === Attachment ===

    def _create_mutators(self) -> Mutators:
        self._attached = False
        field = self._form.register_field(self._options)
        self._field = field
        self._subscriber_id = field.subscribe(self._on_field_commit)
        self._slot_id = new_slot_id()
        self._attached = True
        return self._build_mutators()

    def _build_mutators(self) -> Mutators:
        # Both triggers read this one resolved value
        self._trigger_type = self._options.resolved_trigger_type(self._form.config)
        return extend_mutators(self._form.create_mutators(self.field), self._options, trigger_type=self._trigger_type)

    def _detach(self) -> None:
        if self._field is None:
            return
        if self._slot_id is not None:
            self._field.remove_cache(self._slot_id)
        if self._subscriber_id is not None:
            self._field.unsubscribe(self._subscriber_id)
        self._subscriber_id = None

    def _on_field_commit(self, commit: StateCommit) -> None:
        # Delivery may race a detach; the local flag wins
        if self._unmounted or not self._attached:
            return
        if self._trigger_type == TriggerType.ON_CHANGE and commit.has_changed('value'):
            # The validation commit gets its own pass, which requests the refresh
            self._mutators.validate(throw_errors=False)
            return
        if not self._form.is_host_rendering():
            self._force_update()

    # === Render cycle ===

    def render(self, options: Any = None) -> FieldState:
        """Fold changed configuration into field state and return the snapshot.

        With no baseline in this binding's slot (first render, or first
        render after a reattach) the configuration only becomes the baseline.
        """
        if options is not None:
            options = copy.copy(FieldOptions.coerce(options))
            if options.field_id != self._options.field_id:
                self._rebind(options)
            else:
                self._options = options
                if options.resolved_trigger_type(self._form.config) != self._trigger_type:
                    self._mutators = self._build_mutators()
        options = self._options

        field = self.field
        cached = field.get_cache(self._slot_id)
        if cached is not None:
            changed = inspect_changed(cached, options, self._form.config.inspect_keys)
            if changed:
                logger.debug(f"Binding {self._slot_id!r} folding {sorted(changed)} into {field.id!r}")
                field.set_state(changed)
        field.set_cache(self._slot_id, project(options, self._form.config.inspect_keys))
        return field.get_state()

    def _rebind(self, options: FieldOptions) -> None:
        """Identity changed: new field handle, subscription, slot and mutators.

        A mounted binding hands its view over: the old field is marked
        unmounted (leaving the form's values) and the new one is mounted.
        """
        previous = self.field
        was_mounted = self._mounted and not self._unmounted
        self._detach()
        if was_mounted:
            previous.set_state(_mark_unmounted)
        self._options = options
        self._mutators = self._create_mutators()
        logger.debug(f"Binding rebound from {previous.id!r} to {self.field.id!r}")
        if was_mounted:
            self._mount_field()

    # === Lifecycle ===

    def _mount_field(self) -> None:
        field = self.field
        # Remount must notify so restore-value logic reruns
        field.set_state(_mark_mounted, notify=bool(field.get_state().get('unmounted')))
        self._form.notify(LifeCycleTypes.ON_FIELD_MOUNT, field)

    def mount(self) -> None:
        """View attached. Reattaches subscription and slot after an unmount."""
        if self._subscriber_id is None:
            self._mutators = self._create_mutators()
        self._mount_field()
        self._mounted = True
        self._unmounted = False

    def unmount(self) -> None:
        """View about to go away. Field state persists; only the slot is dropped."""
        if self._unmounted:
            return
        field = self.field
        if self._slot_id is not None:
            field.remove_cache(self._slot_id)
        self._unmounted = True
        if self._subscriber_id is not None:
            field.unsubscribe(self._subscriber_id)
            self._subscriber_id = None
        field.set_state(_mark_unmounted)
