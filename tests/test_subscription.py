"""
Tests for the per-field Subscription Bus.

Tests cover:
- Monotonic, never-reused subscriber ids
- Idempotent unsubscribe
- Delivery order and fault isolation
- Unsubscribing during delivery
"""

import logging

from fieldstate.subscription import SubscriptionBus


class TestSubscribe:
    """Test subscriber id assignment."""

    def test_ids_are_monotonic(self):
        bus = SubscriptionBus()
        ids = [bus.subscribe(lambda payload: None) for _ in range(3)]
        assert ids == [1, 2, 3]

    def test_ids_never_reused(self):
        bus = SubscriptionBus()
        first = bus.subscribe(lambda payload: None)
        bus.unsubscribe(first)
        second = bus.subscribe(lambda payload: None)
        assert second != first
        assert bus.subscriber_ids == [second]

    def test_unsubscribe_twice_is_noop(self):
        bus = SubscriptionBus()
        sid = bus.subscribe(lambda payload: None)
        assert bus.unsubscribe(sid) is True
        assert bus.unsubscribe(sid) is False
        assert len(bus) == 0

    def test_unsubscribe_unknown_id(self):
        bus = SubscriptionBus()
        assert bus.unsubscribe(999) is False


class TestDelivery:
    """Test notify()."""

    def test_delivery_in_subscription_order(self):
        bus = SubscriptionBus()
        order = []
        for name in ('a', 'b', 'c'):
            bus.subscribe(lambda payload, name=name: order.append(name))
        assert bus.notify('x') == 3
        assert order == ['a', 'b', 'c']

    def test_payload_passed_through(self):
        bus = SubscriptionBus()
        received = []
        bus.subscribe(received.append)
        bus.notify({'value': 1})
        assert received == [{'value': 1}]

    def test_raising_subscriber_does_not_block_others(self, caplog):
        bus = SubscriptionBus(owner='email')
        order = []

        def broken(payload):
            raise RuntimeError("listener fault")

        bus.subscribe(lambda payload: order.append('first'))
        bus.subscribe(broken)
        bus.subscribe(lambda payload: order.append('third'))

        with caplog.at_level(logging.WARNING, logger='fieldstate.subscription'):
            bus.notify()

        assert order == ['first', 'third']
        assert 'listener fault' in caplog.text

    def test_self_unsubscribe_mid_pass_does_not_skip_others(self):
        bus = SubscriptionBus()
        order = []
        ids = {}

        def once(payload):
            order.append('once')
            bus.unsubscribe(ids['once'])

        bus.subscribe(lambda payload: order.append('a'))
        ids['once'] = bus.subscribe(once)
        bus.subscribe(lambda payload: order.append('c'))

        bus.notify()
        assert order == ['a', 'once', 'c']

        order.clear()
        bus.notify()
        assert order == ['a', 'c']

    def test_subscriber_removed_by_earlier_one_is_skipped(self):
        bus = SubscriptionBus()
        order = []
        ids = {}

        bus.subscribe(lambda payload: bus.unsubscribe(ids['victim']))
        ids['victim'] = bus.subscribe(lambda payload: order.append('victim'))
        bus.subscribe(lambda payload: order.append('last'))

        bus.notify()
        assert order == ['last']

    def test_subscriber_added_mid_pass_waits_for_next_pass(self):
        bus = SubscriptionBus()
        order = []

        def adder(payload):
            if not order:
                bus.subscribe(lambda p: order.append('late'))
            order.append('adder')

        bus.subscribe(adder)
        bus.notify()
        assert order == ['adder']
        bus.notify()
        assert order == ['adder', 'adder', 'late']

    def test_debug_notifications_logs_each_pass(self, caplog):
        from fieldstate.config import EngineConfig, set_engine_config

        set_engine_config(EngineConfig(debug_notifications=True))
        bus = SubscriptionBus(owner='email')
        bus.subscribe(lambda payload: None)
        with caplog.at_level(logging.INFO, logger='fieldstate.subscription'):
            bus.notify()
        assert "delivering to 1 subscriber" in caplog.text
