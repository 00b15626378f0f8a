"""
Tests for EventBus
"""

import gc

from predict_chat.services import Events, event_bus
from predict_chat.services.event_bus import EventBus


class TestEventBusSubscription:
    """Tests for event subscription"""

    def test_subscribe_to_event(self):
        """Test subscribing to an event"""
        received_events = []

        def handler(event_dict):
            received_events.append(event_dict["data"])

        event_bus.subscribe(Events.PREDICTION_SETTLED, handler)
        event_bus.publish(Events.PREDICTION_SETTLED, {"won": True})
        event_bus.wait_until_idle()

        assert received_events == [{"won": True}]

    def test_unsubscribe_from_event(self):
        """Handler is not called after unsubscribe"""
        received_events = []

        def handler(data):
            received_events.append(data)

        event_bus.subscribe(Events.PREDICTION_SETTLED, handler)
        event_bus.unsubscribe(Events.PREDICTION_SETTLED, handler)
        event_bus.publish(Events.PREDICTION_SETTLED, {"won": True})
        event_bus.wait_until_idle()

        assert received_events == []
        assert not event_bus.has_subscribers(Events.PREDICTION_SETTLED)

    def test_events_are_routed_by_name(self):
        settled = []
        failed = []

        def on_settled(event_dict):
            settled.append(event_dict["name"])

        def on_failed(event_dict):
            failed.append(event_dict["name"])

        event_bus.subscribe(Events.PREDICTION_SETTLED, on_settled)
        event_bus.subscribe(Events.OPERATION_FAILED, on_failed)
        event_bus.publish(Events.OPERATION_FAILED, {})
        event_bus.wait_until_idle()

        assert settled == []
        assert failed == ["operation.failed"]

    def test_weak_subscriber_collected(self):
        """Bound-method subscribers are dropped once collected"""
        received = []

        class Listener:
            def on_event(self, event_dict):
                received.append(event_dict)

        listener = Listener()
        event_bus.subscribe(Events.ROOM_INITIALIZED, listener.on_event)
        assert event_bus.has_subscribers(Events.ROOM_INITIALIZED)

        del listener
        gc.collect()
        event_bus.publish(Events.ROOM_INITIALIZED, {})
        event_bus.wait_until_idle()

        assert received == []
        assert not event_bus.has_subscribers(Events.ROOM_INITIALIZED)


class TestEventBusRobustness:
    """Tests for failure isolation and back-pressure"""

    def test_failing_callback_does_not_block_others(self, bus):
        received = []

        def bad_handler(event_dict):
            raise RuntimeError("boom")

        def good_handler(event_dict):
            received.append(event_dict["data"])

        bus.subscribe(Events.PREDICTION_COMMITTED, bad_handler, weak=False)
        bus.subscribe(Events.PREDICTION_COMMITTED, good_handler, weak=False)
        bus.publish(Events.PREDICTION_COMMITTED, 1)
        bus.wait_until_idle()

        assert received == [1]
        assert bus.get_stats()["errors"] == 1

    def test_full_queue_drops_events(self):
        bus = EventBus(max_queue_size=2)  # not started, nothing drains

        for i in range(5):
            bus.publish(Events.OPERATION_FAILED, i)

        stats = bus.get_stats()
        assert stats["events_published"] == 2
        assert stats["events_dropped"] == 3

    def test_start_stop(self):
        bus = EventBus()
        bus.start()
        assert bus.is_processing
        bus.stop()
        assert not bus.is_processing
