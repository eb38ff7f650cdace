"""
Tests for the Mutator Factory.

Tests cover:
- Base change/focus/blur/validate/reset
- get_value_from_event extraction
- extend_mutators change transform and blur trigger
"""

from dataclasses import replace
from types import SimpleNamespace

import pytest

from fieldstate import (
    FieldOptions,
    LifeCycleTypes,
    Mutators,
    ValidateResult,
    ValidationError,
    create_form,
    extend_mutators,
    get_value_from_event,
)


class TestGetValueFromEvent:
    """Test event-to-value extraction."""

    def test_plain_values_pass_through(self):
        assert get_value_from_event('text') == 'text'
        assert get_value_from_event(3) == 3
        assert get_value_from_event(None) is None
        assert get_value_from_event({'a': 1}) == {'a': 1}

    def test_object_event_value(self):
        event = SimpleNamespace(target=SimpleNamespace(type='text', value='typed'))
        assert get_value_from_event(event) == 'typed'

    def test_checkbox_event(self):
        event = SimpleNamespace(target=SimpleNamespace(type='checkbox', checked=True, value='on'))
        assert get_value_from_event(event) is True

    def test_mapping_event(self):
        assert get_value_from_event({'target': {'value': 'mapped'}}) == 'mapped'


class TestBaseMutators:
    """Test Form.create_mutators()."""

    def test_change_sets_value_and_notifies(self, form, email_field, events):
        received = []
        email_field.subscribe(received.append)
        mutators = form.create_mutators(email_field)

        mutators.change('you@example.com')

        assert email_field.state.value == 'you@example.com'
        assert email_field.state.modified is True
        assert email_field.state.pristine is False
        assert len(received) == 1
        assert received[0].has_changed('value')
        assert (LifeCycleTypes.ON_FIELD_INPUT_CHANGE.value, email_field) in events
        assert form.get_values()['email'] == 'you@example.com'

    def test_change_back_to_initial_is_pristine(self, form, email_field):
        mutators = form.create_mutators(email_field)
        mutators.change('other')
        mutators.change('me@example.com')
        assert email_field.state.pristine is True

    def test_unchanged_value_skips_input_change_event(self, form, email_field, events):
        form.create_mutators(email_field).change('me@example.com')
        assert all(event != LifeCycleTypes.ON_FIELD_INPUT_CHANGE.value for event, _ in events)

    def test_focus_and_blur(self, form, email_field, events):
        mutators = form.create_mutators(email_field)
        mutators.focus()
        assert email_field.state.active is True
        mutators.blur()
        assert email_field.state.active is False
        assert email_field.state.visited is True
        names = [event for event, _ in events]
        assert LifeCycleTypes.ON_FIELD_FOCUS.value in names
        assert LifeCycleTypes.ON_FIELD_BLUR.value in names

    def test_validate_stores_errors_and_raises(self, form, email_field):
        mutators = form.create_mutators(email_field)
        mutators.change('')
        with pytest.raises(ValidationError) as excinfo:
            mutators.validate()
        assert excinfo.value.result.errors == ("This field is required",)
        assert email_field.state.errors == ["This field is required"]
        assert email_field.state.invalid is True
        assert email_field.state.validating is False

    def test_validate_without_throwing(self, form, email_field):
        mutators = form.create_mutators(email_field)
        mutators.change(None)
        result = mutators.validate(throw_errors=False)
        assert result.invalid
        assert email_field.state.valid is False

    def test_validate_fires_start_and_end(self, form, email_field, events):
        form.create_mutators(email_field).validate(throw_errors=False)
        names = [event for event, _ in events]
        start = names.index(LifeCycleTypes.ON_FIELD_VALIDATE_START.value)
        end = names.index(LifeCycleTypes.ON_FIELD_VALIDATE_END.value)
        assert start < end

    def test_callable_rules(self, form):
        field = form.register_field({'name': 'age', 'value': 3, 'rules': [lambda v: None if v >= 18 else 'too young']})
        result = form.create_mutators(field).validate(throw_errors=False)
        assert result.errors == ('too young',)

    def test_validator_fault_is_captured(self, caplog):
        def broken(value, rules, state):
            raise RuntimeError("validator down")

        form = create_form(validator=broken)
        field = form.register_field({'name': 'x'})
        result = form.create_mutators(field).validate(throw_errors=False)
        assert result.errors == ('validator down',)
        assert field.state.errors == ['validator down']
        assert 'validator down' in caplog.text

    def test_custom_validator_mapping_result(self):
        form = create_form(validator=lambda value, rules, state: {'errors': [], 'warnings': ['weak']})
        field = form.register_field({'name': 'password', 'value': 'abc'})
        result = form.create_mutators(field).validate()
        assert result == ValidateResult(errors=(), warnings=('weak',))
        assert field.state.warnings == ['weak']

    def test_reset(self, form, email_field):
        mutators = form.create_mutators(email_field)
        mutators.change('changed')
        mutators.blur()
        mutators.reset()
        state = email_field.state
        assert state.value == 'me@example.com'
        assert state.visited is False
        assert state.modified is False
        assert state.pristine is True


class TestExtendMutators:
    """Test extension hooks."""

    def _spy_mutators(self):
        calls = []
        base = Mutators(
            change=lambda *args: calls.append(('change',) + args),
            focus=lambda: calls.append(('focus',)),
            blur=lambda: calls.append(('blur',)),
            validate=lambda throw_errors=True: calls.append(('validate', throw_errors)),
            reset=lambda validate=False: calls.append(('reset', validate)),
        )
        return base, calls

    def test_change_normalizes_events(self):
        base, calls = self._spy_mutators()
        extended = extend_mutators(base, FieldOptions(name='x'))
        extended.change(SimpleNamespace(target=SimpleNamespace(type='text', value='typed')))
        assert calls == [('change', 'typed')]

    def test_get_value_from_event_runs_first(self):
        base, calls = self._spy_mutators()
        options = {'name': 'x', 'getValueFromEvent': lambda event, extra=None: event['payload'].upper()}
        extend_mutators(base, options).change({'payload': 'abc'})
        assert calls == [('change', 'ABC')]

    def test_custom_normalize_value(self):
        base, calls = self._spy_mutators()
        options = FieldOptions(name='x', normalize_value=lambda value: int(value))
        extend_mutators(base, options).change('42')
        assert calls == [('change', 42)]

    def test_blur_on_blur_trigger_validates_once(self):
        base, calls = self._spy_mutators()
        extend_mutators(base, FieldOptions(name='x', trigger_type='onBlur')).blur()
        assert calls == [('blur',), ('validate', False)]

    def test_blur_on_change_trigger_does_not_validate(self):
        base, calls = self._spy_mutators()
        extend_mutators(base, FieldOptions(name='x', trigger_type='onChange')).blur()
        assert calls == [('blur',)]

    def test_base_is_untouched(self):
        base, _ = self._spy_mutators()
        extended = extend_mutators(base, FieldOptions(name='x'))
        assert extended is not base
        assert extended.focus is base.focus
        assert replace(base) == base

    def test_blur_validation_failure_does_not_raise(self, form, email_field):
        mutators = extend_mutators(form.create_mutators(email_field), FieldOptions(name='email', trigger_type='onBlur'))
        mutators.change('')
        mutators.blur()
        assert email_field.state.errors == ["This field is required"]
