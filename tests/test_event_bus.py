from blockbattle.events.bus import EventBus


def test_event_bus_emit_subscribe():
    bus = EventBus()
    received = {}

    def handler(sender, **kwargs):
        received.update(kwargs)

    bus.subscribe("test", handler)
    bus.emit("test", owner_entity=2, lines=4)

    assert received["owner_entity"] == 2
    assert received["lines"] == 4


def test_emit_without_subscribers_is_noop():
    bus = EventBus()
    bus.emit("nobody_listens", value=1)


def test_unsubscribe_stops_delivery():
    bus = EventBus()
    calls = []

    def handler(sender, **kwargs):
        calls.append(kwargs)

    bus.subscribe("test", handler)
    bus.emit("test", n=1)
    bus.unsubscribe("test", handler)
    bus.emit("test", n=2)
    assert calls == [{"n": 1}]


def test_handlers_run_in_subscription_order():
    bus = EventBus()
    order = []
    bus.subscribe("test", lambda s, **k: order.append("first"))
    bus.subscribe("test", lambda s, **k: order.append("second"))
    bus.emit("test")
    assert order == ["first", "second"]
