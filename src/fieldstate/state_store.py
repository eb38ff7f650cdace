"""
State Store: one canonical state record per field.

Every mutation is a transaction:
1. Deep-copy the current snapshot into a StateDraft
2. Run the caller's mutator against the draft (or merge a partial mapping into it)
3. Freeze the draft into a new FieldState and compute the changed-key set

If the mutator raises, nothing is committed and the exception propagates.
The changed-key set is materialized once per commit and answers has_changed()
until the next commit.
"""
from collections.abc import Mapping, Sequence
import copy
import logging
from typing import Any, Callable, Dict, FrozenSet, Optional, Set, Union

from fieldstate.snapshot_model import FieldState, StateCommit, StateDraft

logger = logging.getLogger(__name__)

Mutator = Union[Callable[[StateDraft], None], Mapping]
ArrayMerge = Callable[[Any, Any], Any]


def replace_array(target: Any, source: Any) -> Any:
    """Array merge policy: the incoming sequence wins wholesale."""
    return list(source) if isinstance(source, list) else source


def _is_array(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def merge(target: Dict[str, Any], source: Mapping, array_merge: ArrayMerge = replace_array) -> Dict[str, Any]:
    """Fold ``source`` into ``target`` in place and return ``target``.

    - Mapping into mapping: recursive merge
    - Sequence: handed to ``array_merge`` (default replaces wholesale, so
      rules=[a, b, c] merged with rules=[x] gives [x])
    - Anything else: assigned
    """
    for key, incoming in source.items():
        current = target.get(key) if isinstance(target, Mapping) else None
        if isinstance(incoming, Mapping) and isinstance(current, dict):
            merged = copy.copy(current)
            merge(merged, incoming, array_merge)
            target[key] = merged
        elif _is_array(incoming):
            target[key] = array_merge(current, incoming)
        else:
            target[key] = incoming
    return target


def values_differ(previous: Any, current: Any) -> bool:
    """Store equality policy: identity, then ``!=``; incomparable values differ."""
    if previous is current:
        return False
    try:
        return bool(previous != current)
    except Exception:
        return True


def diff_keys(previous: Mapping, current: Mapping) -> Set[str]:
    """Top-level keys whose values differ (added and removed keys included)."""
    changed = set()
    for key in previous.keys() | current.keys():
        if key not in previous or key not in current:
            changed.add(key)
        elif values_differ(previous[key], current[key]):
            changed.add(key)
    return changed


class StateStore:
    """Holds one field's state and applies transactional updates.

    Thread safety: Not thread-safe (all operations expected on the host UI thread).
    """

    def __init__(self, initial: Optional[Mapping] = None, owner: str = ""):
        self._owner = owner
        self._state = FieldState(copy.deepcopy(dict(initial or {})))
        self._changed_keys: FrozenSet[str] = frozenset()
        self._sequence = 0
        self._last_commit: Optional[StateCommit] = None

    def get_state(self) -> FieldState:
        return self._state

    @property
    def changed_keys(self) -> FrozenSet[str]:
        """Keys changed by the most recent commit."""
        return self._changed_keys

    @property
    def last_commit(self) -> Optional[StateCommit]:
        return self._last_commit

    def has_changed(self, key: str) -> bool:
        return key in self._changed_keys

    def begin(self) -> StateDraft:
        """Open a draft of the current state."""
        return StateDraft(copy.deepcopy(dict(self._state)))

    def apply(self, draft: StateDraft, mutator: Mutator) -> None:
        """Run ``mutator`` against ``draft``. Exceptions propagate."""
        if isinstance(mutator, Mapping):
            merge(draft, mutator)
        elif callable(mutator):
            mutator(draft)
        else:
            raise TypeError(f"set_state expects a callable or mapping, got {type(mutator).__name__}")

    def commit(self, draft: StateDraft, notify: bool = True) -> StateCommit:
        """Freeze ``draft`` as the new snapshot and record what changed."""
        previous = self._state
        current = FieldState(copy.deepcopy(dict(draft)))
        changed = diff_keys(previous, current)

        self._sequence += 1
        self._state = current
        self._changed_keys = frozenset(changed)
        commit = StateCommit.create(
            sequence=self._sequence,
            previous=previous,
            current=current,
            changed_keys=changed,
            assigned_keys=draft.assigned_keys,
            notify=notify,
        )
        self._last_commit = commit
        if changed:
            logger.debug(f"State commit #{commit.sequence} for {self._owner!r}: changed={sorted(changed)}")
        return commit

    def set_state(self, mutator: Mutator, notify: bool = True) -> StateCommit:
        """Apply ``mutator`` to a draft and commit it.

        Args:
            mutator: Callable receiving the mutable draft, or a mapping of
                     partial updates merged with the array-replace policy.
            notify: Recorded on the commit; the owner decides whether to deliver.

        Returns:
            The StateCommit describing the transition.
        """
        draft = self.begin()
        try:
            self.apply(draft, mutator)
        except Exception:
            logger.debug(f"State transaction aborted for {self._owner!r}; keeping commit #{self._sequence}")
            raise
        return self.commit(draft, notify=notify)
