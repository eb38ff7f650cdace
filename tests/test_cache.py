"""
Tests for the Cache Slot Registry and configuration diffing.
"""

from fieldstate.cache import CacheSlotRegistry, SlotId, inspect_changed, new_slot_id, project
from fieldstate.config import INSPECT_PROPS_KEYS, FieldOptions


class TestCacheSlotRegistry:
    """Test per-slot baselines."""

    def test_get_missing_slot(self):
        cache = CacheSlotRegistry()
        assert cache.get('nope') is None

    def test_set_stores_a_copy(self):
        cache = CacheSlotRegistry()
        config = {'props': {'size': 'small'}}
        cache.set('slot', config)
        config['props']['size'] = 'large'
        assert cache.get('slot') == {'props': {'size': 'small'}}

    def test_remove_is_idempotent(self):
        cache = CacheSlotRegistry()
        cache.set('slot', {})
        assert cache.remove('slot') is True
        assert cache.remove('slot') is False
        assert 'slot' not in cache

    def test_slots_are_independent(self):
        cache = CacheSlotRegistry()
        a, b = new_slot_id(), new_slot_id()
        cache.set(a, {'required': True})
        cache.set(b, {'required': False})
        assert cache.get(a) == {'required': True}
        assert cache.get(b) == {'required': False}
        assert len(cache) == 2

    def test_slot_ids_unique(self):
        assert SlotId.create() != SlotId.create()


class TestInspectChanged:
    """Test allow-listed diffing."""

    def test_no_changes_returns_none(self):
        config = {'props': {}, 'required': True}
        assert inspect_changed(config, dict(config), INSPECT_PROPS_KEYS) is None

    def test_only_allow_listed_keys(self):
        cached = {'required': False, 'label': 'A'}
        incoming = {'required': True, 'label': 'B'}
        assert inspect_changed(cached, incoming, INSPECT_PROPS_KEYS) == {'required': True}

    def test_key_missing_from_incoming_is_not_a_change(self):
        assert inspect_changed({'visible': False}, {}, INSPECT_PROPS_KEYS) is None

    def test_key_new_in_incoming_is_a_change(self):
        assert inspect_changed({}, {'display': False}, INSPECT_PROPS_KEYS) == {'display': False}

    def test_field_options_diff_like_mappings(self):
        cached = project(FieldOptions(name='a', rules=['x', 'y']), INSPECT_PROPS_KEYS)
        incoming = FieldOptions(name='a', rules=['x'])
        assert inspect_changed(cached, incoming, INSPECT_PROPS_KEYS) == {'rules': ['x']}

    def test_project_keeps_only_allow_listed_keys(self):
        projected = project({'props': {'a': 1}, 'label': 'x'}, INSPECT_PROPS_KEYS)
        assert projected == {'props': {'a': 1}}
