"""Pytest configuration and shared fixtures."""
import pytest

from fieldstate import Form, create_form, reset_engine_config


@pytest.fixture(autouse=True)
def reset_config():
    """Each test starts from the built-in engine defaults."""
    reset_engine_config()
    yield
    reset_engine_config()


class Recorder:
    """Callable that records every call's positional args."""

    def __init__(self):
        self.calls = []

    def __call__(self, *args):
        self.calls.append(args)

    @property
    def count(self):
        return len(self.calls)


@pytest.fixture
def recorder():
    return Recorder


@pytest.fixture
def form() -> Form:
    """Form with an initial value for 'email'."""
    return create_form(initial_values={'email': 'me@example.com'}, form_id='test-form')


@pytest.fixture
def email_field(form):
    """Registered, required 'email' field."""
    return form.register_field({'name': 'email', 'required': True, 'rules': []})


@pytest.fixture
def events(form):
    """(event_type, payload) pairs broadcast on the form's Effect Bus."""
    log = []
    form.add_effect(lambda event_type, payload: log.append((event_type, payload)))
    return log
