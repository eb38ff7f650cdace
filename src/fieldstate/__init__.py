"""
Reactive field-state engine for form UI bindings.

Tracks the runtime state of a form and its fields (value, validity,
visibility, props, mount status), mediates mutations, and notifies observers
when relevant state changes. Independent of any rendering framework.

Key Features:
- Transactional per-field State Store with array-replace structural merge
- Per-field Subscription Bus with stable, never-reused subscriber ids
- Cache slots that keep per-binding diff baselines across view remounts
- Mutator Factory with fixed change-transform and blur-trigger hooks
- Form-level lifecycle Effect Bus and a host-rendering flag

Quick Start:
    >>> from fieldstate import create_form, form_context, FieldBinding
    >>>
    >>> form = create_form(initial_values={'email': 'me@example.com'})
    >>> with form_context(form):
    ...     binding = FieldBinding({'name': 'email', 'required': True}, force_update=view.refresh)
    >>> binding.render()
    >>> binding.mount()
    >>> binding.mutators.change('you@example.com')
    >>> form.get_values()
    {'email': 'you@example.com'}

Architecture:
    binding --register_field--> Form --owns--> Field
    binding --subscribe-------> Field.SubscriptionBus
    binding --render/diff-----> Field.CacheSlotRegistry -> Field.set_state
    Field.set_state --commit--> Form commit hook -> Effect Bus
                    --deliver-> subscribers -> force_update (unless host rendering)

Modules:
    - state_store: transactional store, merge, equality policy
    - snapshot_model: FieldState snapshots, drafts, commit records
    - subscription: per-field Subscription Bus
    - cache: Cache Slot Registry and configuration diffing
    - mutators: Mutator Factory and extension hooks
    - lifecycle: lifecycle event names and the Effect Bus
    - validation: validation results and the default validator
    - field: the Field container
    - form: Form, registry and form context
    - binding: framework-agnostic reference binding
    - config: engine configuration and field options
"""

# Configuration
from fieldstate.config import (
    EngineConfig,
    FieldOptions,
    TriggerType,
    INSPECT_PROPS_KEYS,
    get_engine_config,
    set_engine_config,
    reset_engine_config,
)

# Errors
from fieldstate.exceptions import (
    FieldStateError,
    FormNotFoundError,
    FieldIdentityError,
    UnknownFieldError,
    ValidationError,
)

# State store
from fieldstate.snapshot_model import FieldState, StateDraft, StateCommit, default_field_state
from fieldstate.state_store import StateStore, merge, replace_array, values_differ

# Subscription and cache
from fieldstate.subscription import SubscriptionBus
from fieldstate.cache import CacheSlotRegistry, SlotId, inspect_changed, new_slot_id

# Lifecycle and validation
from fieldstate.lifecycle import EffectBus, LifeCycleTypes
from fieldstate.validation import ValidateResult, default_validator, normalize_result

# Field, mutators, form
from fieldstate.field import Field
from fieldstate.mutators import Mutators, extend_mutators, get_value_from_event
from fieldstate.form import Form, create_form, form_context, get_current_form

# Binding
from fieldstate.binding import FieldBinding

__all__ = [
    # Configuration
    'EngineConfig',
    'FieldOptions',
    'TriggerType',
    'INSPECT_PROPS_KEYS',
    'get_engine_config',
    'set_engine_config',
    'reset_engine_config',
    # Errors
    'FieldStateError',
    'FormNotFoundError',
    'FieldIdentityError',
    'UnknownFieldError',
    'ValidationError',
    # State store
    'FieldState',
    'StateDraft',
    'StateCommit',
    'default_field_state',
    'StateStore',
    'merge',
    'replace_array',
    'values_differ',
    # Subscription and cache
    'SubscriptionBus',
    'CacheSlotRegistry',
    'SlotId',
    'inspect_changed',
    'new_slot_id',
    # Lifecycle and validation
    'EffectBus',
    'LifeCycleTypes',
    'ValidateResult',
    'default_validator',
    'normalize_result',
    # Field, mutators, form
    'Field',
    'Mutators',
    'extend_mutators',
    'get_value_from_event',
    'Form',
    'create_form',
    'form_context',
    'get_current_form',
    # Binding
    'FieldBinding',
]

__version__ = '1.0.0'
__description__ = 'Reactive field-state engine for form UI bindings'
