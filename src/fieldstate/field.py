"""
Field: persistent state container for one form input.

Lifecycle: created by Form.register_field(), persists until Form.remove_field().
Bindings attach (subscribe + cache slot) and detach many times in between; a
view unmount never destroys the Field or its state.

Core Attributes:
- id: registry key (path, else name)
- form_id: opaque handle of the owning Form (no strong back-reference)
- _store: StateStore with the one canonical state record
- _bus: SubscriptionBus of binding callbacks
- _cache: CacheSlotRegistry of per-binding diff baselines
"""
from collections import deque
import inspect
import logging
import weakref
from typing import Any, Callable, Deque, FrozenSet, List, Mapping, Optional, Tuple

from fieldstate.cache import CacheSlotRegistry
from fieldstate.snapshot_model import FieldState, StateCommit, StateDraft
from fieldstate.state_store import Mutator, StateStore
from fieldstate.subscription import Subscriber, SubscriptionBus

logger = logging.getLogger(__name__)

CommitHook = Callable[['Field', StateCommit], None]


def reconcile_lifecycle(draft: StateDraft) -> None:
    """Attaching a view clears the detached flag in the same commit.

    ``mounted``/``unmounted`` stay independent axes: only an explicit
    ``mounted = True`` write (without a matching ``unmounted`` write) clears
    ``unmounted``; marking a field unmounted never touches ``mounted``.
    """
    assigned = draft.assigned_keys
    if 'mounted' in assigned and 'unmounted' not in assigned and draft.get('mounted') and draft.get('unmounted'):
        draft['unmounted'] = False


class Field:
    """One field's state, subscribers and cache slots."""

    def __init__(
        self,
        field_id: str,
        initial_state: Optional[Mapping[str, Any]] = None,
        form_id: Optional[str] = None,
        on_commit: Optional[CommitHook] = None,
    ):
        self.id = field_id
        self.form_id = form_id
        self._store = StateStore(initial_state, owner=field_id)
        self._bus = SubscriptionBus(owner=field_id)
        self._cache = CacheSlotRegistry(owner=field_id)

        # Commits made while a delivery is running wait here, oldest first
        self._pending: Deque[Tuple[StateCommit, bool]] = deque()
        self._delivering = False

        # Bound methods are held weakly so a Field never keeps its Form alive
        self._on_commit: Optional[Callable[[], Optional[CommitHook]]] = None
        if on_commit is not None:
            if inspect.ismethod(on_commit):
                self._on_commit = weakref.WeakMethod(on_commit)
            else:
                self._on_commit = lambda: on_commit

    def __repr__(self) -> str:
        return f"Field({self.id!r}, subscribers={len(self._bus)}, slots={len(self._cache)})"

    # === State ===

    def get_state(self) -> FieldState:
        return self._store.get_state()

    @property
    def state(self) -> FieldState:
        return self._store.get_state()

    def has_changed(self, key: str) -> bool:
        """Whether ``key`` changed in the most recent commit."""
        return self._store.has_changed(key)

    @property
    def changed_keys(self) -> FrozenSet[str]:
        return self._store.changed_keys

    @property
    def last_commit(self) -> Optional[StateCommit]:
        return self._store.last_commit

    def set_state(self, mutator: Mutator, notify: bool = True) -> StateCommit:
        """Apply a transactional update, then notify subscribers.

        Args:
            mutator: Callable receiving a mutable StateDraft, or a mapping of
                     partial updates (structural merge, arrays replaced).
            notify: Deliver a pass to subscribers after the commit. The pass
                    happens even when no key changed; the form's own
                    bookkeeping runs regardless of this flag.

        A call made from inside a delivery (a subscriber, or an effect fired
        by the form's commit hook) commits immediately, but its hook and
        subscriber pass run after the current pass finishes. Every subscriber
        therefore sees commits in the order they were made.

        Raises:
            Whatever ``mutator`` raises. The state is left untouched.
        """
        draft = self._store.begin()
        try:
            self._store.apply(draft, mutator)
        except Exception:
            logger.debug(f"Mutator raised for field {self.id!r}; state not committed")
            raise
        reconcile_lifecycle(draft)
        commit = self._store.commit(draft, notify=notify)

        self._pending.append((commit, notify))
        if self._delivering:
            logger.debug(f"Field {self.id!r}: commit #{commit.sequence} queued behind current delivery")
            return commit
        self._drain()
        return commit

    def _drain(self) -> None:
        self._delivering = True
        try:
            while self._pending:
                commit, notify = self._pending.popleft()
                self._run_commit_hook(commit)
                if notify:
                    self._bus.notify(commit)
        finally:
            self._delivering = False

    def _run_commit_hook(self, commit: StateCommit) -> None:
        if self._on_commit is None:
            return
        hook = self._on_commit()
        if hook is None:
            return
        try:
            hook(self, commit)
        except Exception as e:
            logger.warning(f"Error in form commit hook for field {self.id!r}: {e}", exc_info=True)

    # === Subscription ===

    def subscribe(self, callback: Subscriber) -> int:
        """Register a callback invoked with the StateCommit after each notifying commit."""
        return self._bus.subscribe(callback)

    def unsubscribe(self, subscriber_id: int) -> bool:
        return self._bus.unsubscribe(subscriber_id)

    @property
    def subscriber_ids(self) -> List[int]:
        return self._bus.subscriber_ids

    # === Cache slots ===

    def get_cache(self, slot_id: Any) -> Any:
        return self._cache.get(slot_id)

    def set_cache(self, slot_id: Any, value: Any) -> None:
        self._cache.set(slot_id, value)

    def remove_cache(self, slot_id: Any) -> bool:
        """Drop the diff baseline for ``slot_id``. Never touches state."""
        return self._cache.remove(slot_id)

    def has_cache(self, slot_id: Any) -> bool:
        return slot_id in self._cache

    # === Teardown ===

    def dispose(self) -> None:
        """Detach every subscriber and cache slot. Called when the Form removes the field."""
        self._bus.clear()
        self._cache.clear()
        self._pending.clear()
        self._on_commit = None
        logger.debug(f"Disposed field {self.id!r}")
