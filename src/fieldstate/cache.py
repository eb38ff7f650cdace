"""
Cache Slot Registry: per-field, per-binding diff baselines.

A binding instance diffs the configuration it receives on every render
against what it saw last time. That baseline has to outlive the view (a
remounted view would otherwise start with no diff state), so it is stored on
the Field, keyed by an opaque slot id the binding allocates once.

The cache is never a source of truth for field state.
"""
import copy
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional

from fieldstate.state_store import values_differ

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class SlotId:
    """Opaque identity of one binding instance."""
    token: str

    @classmethod
    def create(cls) -> 'SlotId':
        return cls(token=str(uuid.uuid4()))

    def __repr__(self) -> str:
        return f"SlotId({self.token[:8]})"


def new_slot_id() -> SlotId:
    return SlotId.create()


class CacheSlotRegistry:
    """Mapping of slot id -> last configuration seen by that binding."""

    def __init__(self, owner: str = ""):
        self._owner = owner
        self._slots: Dict[Any, Any] = {}

    def get(self, slot_id: Any, default: Any = None) -> Any:
        return self._slots.get(slot_id, default)

    def set(self, slot_id: Any, value: Any) -> None:
        """Store a deep copy of ``value`` as the slot's baseline."""
        self._slots[slot_id] = copy.deepcopy(value)

    def remove(self, slot_id: Any) -> bool:
        """Drop a slot's baseline. Returns False if it was not present."""
        if self._slots.pop(slot_id, _MISSING) is _MISSING:
            return False
        logger.debug(f"Removed cache slot {slot_id!r} from {self._owner!r}")
        return True

    def clear(self) -> None:
        self._slots.clear()

    def __contains__(self, slot_id: object) -> bool:
        return slot_id in self._slots

    def __len__(self) -> int:
        return len(self._slots)


def _read(config: Any, key: str) -> Any:
    if config is None:
        return _MISSING
    # Mappings and FieldOptions both answer `in` and get()
    if isinstance(config, Mapping) or (hasattr(config, '__contains__') and hasattr(config, 'get')):
        return config.get(key) if key in config else _MISSING
    return getattr(config, key, _MISSING)


def inspect_changed(cached: Any, incoming: Any, keys: Iterable[str]) -> Optional[Dict[str, Any]]:
    """Keys from ``keys`` whose incoming value differs from the cached one.

    Keys absent from ``incoming`` are not changes. Returns None when nothing
    changed so callers can skip the state update entirely.
    """
    changed: Dict[str, Any] = {}
    for key in keys:
        new_value = _read(incoming, key)
        if new_value is _MISSING:
            continue
        old_value = _read(cached, key)
        if old_value is _MISSING or values_differ(old_value, new_value):
            changed[key] = copy.deepcopy(new_value)
    return changed or None


def project(config: Any, keys: Iterable[str]) -> Dict[str, Any]:
    """The diff-relevant part of ``config`` (keys it actually carries)."""
    projected: Dict[str, Any] = {}
    for key in keys:
        value = _read(config, key)
        if value is not _MISSING:
            projected[key] = value
    return projected
