"""
Snapshot, draft and commit types for the per-field State Store.

- FieldState: read-only view of one committed state (never changes after commit)
- StateDraft: mutable working copy handed to setState mutator functions
- StateCommit: record of one committed transition (what changed, whether it notified)

Design Philosophy: Correct by Construction
- Snapshots are only created by the store, from a finished draft
- Commits are frozen dataclasses; nothing rewrites history
- Attribute access mirrors item access so mutators read naturally
"""

from collections.abc import Mapping
import copy
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterator, Set
import time


DEFAULT_FIELD_STATE: Dict[str, Any] = {
    'name': None,
    'path': None,
    'value': None,
    'initial_value': None,
    'props': {},
    'rules': [],
    'required': False,
    'editable': True,
    'visible': True,
    'display': True,
    'mounted': False,
    'unmounted': False,
    'errors': [],
    'warnings': [],
    'valid': True,
    'invalid': False,
    'validating': False,
    'active': False,
    'visited': False,
    'modified': False,
    'pristine': True,
}


def default_field_state(**overrides: Any) -> Dict[str, Any]:
    """Fresh, independent copy of the default state with ``overrides`` applied."""
    state = copy.deepcopy(DEFAULT_FIELD_STATE)
    state.update(overrides)
    return state


class FieldState(Mapping):
    """Read-only snapshot of a field's state.

    Supports ``state['value']`` and ``state.value``. Use Field.set_state()
    to change state; this object never changes.
    """

    __slots__ = ('_data',)

    def __init__(self, data: Dict[str, Any]):
        object.__setattr__(self, '_data', data)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __getattr__(self, name: str) -> Any:
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(f"FieldState has no key '{name}'") from None

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("FieldState is read-only. Use field.set_state(mutator) to change state.")

    def __delattr__(self, name: str) -> None:
        raise AttributeError("FieldState is read-only. Use field.set_state(mutator) to change state.")

    def __reduce__(self):
        return (FieldState, (self._data,))

    def __repr__(self) -> str:
        return f"FieldState({self._data!r})"

    def to_dict(self) -> Dict[str, Any]:
        """Independent deep copy, safe to mutate."""
        return copy.deepcopy(self._data)


class StateDraft(dict):
    """Mutable working copy of a field's state for one transaction.

    Records every key written during the transaction in ``assigned_keys``,
    including writes that leave the value unchanged.
    """

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        object.__setattr__(self, 'assigned_keys', set())

    def __setitem__(self, key: str, value: Any) -> None:
        self.assigned_keys.add(key)
        super().__setitem__(key, value)

    def __delitem__(self, key: str) -> None:
        self.assigned_keys.add(key)
        super().__delitem__(key)

    def update(self, *args: Any, **kwargs: Any) -> None:
        for key, value in dict(*args, **kwargs).items():
            self[key] = value

    def setdefault(self, key: str, default: Any = None) -> Any:
        if key not in self:
            self[key] = default
        return self[key]

    def __getattr__(self, name: str) -> Any:
        try:
            return self[name]
        except KeyError:
            raise AttributeError(f"StateDraft has no key '{name}'") from None

    def __setattr__(self, name: str, value: Any) -> None:
        self[name] = value

    def __delattr__(self, name: str) -> None:
        try:
            del self[name]
        except KeyError:
            raise AttributeError(name) from None


@dataclass(frozen=True)
class StateCommit:
    """Immutable record of one committed State Store transition.

    Analogous to a git commit for a single field: ``previous`` and
    ``current`` are the snapshots on either side.
    """
    sequence: int
    previous: FieldState
    current: FieldState
    changed_keys: FrozenSet[str]
    assigned_keys: FrozenSet[str]
    notify: bool
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def create(
        cls,
        sequence: int,
        previous: FieldState,
        current: FieldState,
        changed_keys: Set[str],
        assigned_keys: Set[str],
        notify: bool,
    ) -> 'StateCommit':
        return cls(
            sequence=sequence,
            previous=previous,
            current=current,
            changed_keys=frozenset(changed_keys),
            assigned_keys=frozenset(assigned_keys),
            notify=notify,
        )

    def has_changed(self, key: str) -> bool:
        return key in self.changed_keys

    def transitioned(self, key: str, to: Any) -> bool:
        """True when ``key`` changed in this commit and now equals ``to``."""
        return key in self.changed_keys and self.current.get(key) == to

    def to_dict(self) -> Dict[str, Any]:
        """Export to a plain dict (for logging and debugging)."""
        return {
            'sequence': self.sequence,
            'timestamp': self.timestamp,
            'changed_keys': sorted(self.changed_keys),
            'assigned_keys': sorted(self.assigned_keys),
            'notify': self.notify,
            'previous': dict(self.previous),
            'current': dict(self.current),
        }
