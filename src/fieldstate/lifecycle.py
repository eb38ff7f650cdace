"""
Form-level lifecycle events (the Effect Bus).

Bindings announce lifecycle transitions (mount, unmount, ...) through
Form.notify(); the form itself announces value changes, validation and field
registration. Listeners react to cross-field effects. This bus is separate
from each field's Subscription Bus.
"""
from enum import Enum
import logging
from typing import Any, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class LifeCycleTypes(str, Enum):
    """Named lifecycle events broadcast at the form level."""
    ON_FORM_INIT = 'onFormInit'

    ON_FIELD_INIT = 'onFieldInit'
    ON_FIELD_MOUNT = 'onFieldMount'
    ON_FIELD_UNMOUNT = 'onFieldUnmount'
    ON_FIELD_REMOVE = 'onFieldRemove'

    ON_FIELD_CHANGE = 'onFieldChange'
    ON_FIELD_VALUE_CHANGE = 'onFieldValueChange'
    ON_FIELD_INPUT_CHANGE = 'onFieldInputChange'

    ON_FIELD_FOCUS = 'onFieldFocus'
    ON_FIELD_BLUR = 'onFieldBlur'

    ON_FIELD_VALIDATE_START = 'onFieldValidateStart'
    ON_FIELD_VALIDATE_END = 'onFieldValidateEnd'


EffectListener = Callable[[str, Any], None]

# None registers for every event
_ALL = None


class EffectBus:
    """Broadcasts lifecycle events to form-level listeners.

    Thread safety: Not thread-safe (all operations expected on the host UI thread).
    """

    def __init__(self, owner: str = ""):
        self._owner = owner
        self._listeners: List[Tuple[Optional[str], EffectListener]] = []

    @staticmethod
    def _key(event_type: Any) -> Optional[str]:
        if event_type is None:
            return _ALL
        return event_type.value if isinstance(event_type, Enum) else str(event_type)

    def add_listener(self, callback: EffectListener, event_type: Any = None) -> None:
        """Subscribe ``callback`` to ``event_type`` (or to every event)."""
        entry = (self._key(event_type), callback)
        if entry not in self._listeners:
            self._listeners.append(entry)

    def remove_listener(self, callback: EffectListener, event_type: Any = None) -> None:
        """Unsubscribe. Unknown listeners are ignored."""
        entry = (self._key(event_type), callback)
        if entry in self._listeners:
            self._listeners.remove(entry)

    def on(self, event_type: Any) -> Callable[[EffectListener], EffectListener]:
        """Decorator form of add_listener for a single event."""
        def decorator(callback: EffectListener) -> EffectListener:
            self.add_listener(callback, event_type)
            return callback
        return decorator

    def notify(self, event_type: Any, payload: Any = None) -> int:
        """Broadcast ``event_type`` to matching listeners.

        Each listener receives ``(event_type, payload)``. A failing listener is
        logged and does not block the rest.

        Returns:
            Number of listeners invoked.
        """
        key = self._key(event_type)
        invoked = 0
        for listened, callback in list(self._listeners):
            if listened is not _ALL and listened != key:
                continue
            invoked += 1
            try:
                callback(key, payload)
            except Exception as e:
                logger.warning(f"Error in lifecycle listener for {key!r} on {self._owner!r}: {e}", exc_info=True)
        return invoked

    def clear(self) -> None:
        self._listeners.clear()

    def __len__(self) -> int:
        return len(self._listeners)

