from oauth.events import LOGIN, LOGOUT, EventBus


def test_handlers_receive_payload_in_order():
    bus = EventBus()
    received = []
    bus.on(LOGIN, lambda payload: received.append(("first", payload)))
    bus.on(LOGIN, lambda payload: received.append(("second", payload)))

    bus.emit(LOGIN, "tokens")

    assert received == [("first", "tokens"), ("second", "tokens")]


def test_unsubscribe_function_and_off():
    bus = EventBus()
    received = []

    def handler(payload):
        received.append(payload)

    unsubscribe = bus.on(LOGOUT, handler)
    unsubscribe()
    bus.off(LOGOUT, handler)
    bus.emit(LOGOUT)

    assert received == []
    assert bus.listener_count(LOGOUT) == 0


def test_raising_handler_does_not_stop_others():
    bus = EventBus()
    received = []

    def broken(payload):
        raise RuntimeError("boom")

    bus.on(LOGIN, broken)
    bus.on(LOGIN, received.append)

    bus.emit(LOGIN, 1)

    assert received == [1]


def test_emit_uses_snapshot_of_handlers():
    bus = EventBus()
    received = []

    def late(payload):
        received.append(("late", payload))

    def subscriber(payload):
        received.append(("subscriber", payload))
        bus.on(LOGIN, late)
        bus.off(LOGIN, remover_target)

    def remover_target(payload):
        received.append(("removed", payload))

    bus.on(LOGIN, subscriber)
    bus.on(LOGIN, remover_target)

    bus.emit(LOGIN, 1)
    assert received == [("subscriber", 1), ("removed", 1)]

    received.clear()
    bus.off(LOGIN, subscriber)
    bus.emit(LOGIN, 2)
    assert received == [("late", 2)]


def test_clear_drops_all_subscriptions():
    bus = EventBus()
    bus.on(LOGIN, print)
    bus.on(LOGOUT, print)
    bus.clear()

    assert bus.listener_count(LOGIN) == 0
    assert bus.listener_count(LOGOUT) == 0
