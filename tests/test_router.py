from signaling.registry import ConnectionRegistry
from signaling.router import SignalRouter
from conftest import drain


def test_relay_delivers_opaque_envelope():
    registry = ConnectionRegistry()
    target = registry.register("b")
    router = SignalRouter(registry)
    envelope = {"type": "offer", "sdp": "v=0", "extra": {"nested": [1, 2]}}

    assert router.relay(envelope, "b", "a") is True
    assert drain(target) == [{"event": "receive-signal", "data": {"signal": envelope, "from": "a"}}]


def test_relay_forwards_unknown_signal_types():
    registry = ConnectionRegistry()
    target = registry.register("b")
    router = SignalRouter(registry)

    assert router.relay({"type": "renegotiate"}, "b", "a") is True
    assert drain(target)[0]["data"]["signal"] == {"type": "renegotiate"}


def test_relay_to_unknown_target_is_a_noop():
    registry = ConnectionRegistry()
    router = SignalRouter(registry)

    assert router.relay({"type": "answer"}, "gone", "a") is False
    assert "gone" not in registry


def test_forward_after_unregister_is_dropped():
    registry = ConnectionRegistry()
    registry.register("b")
    registry.unregister("b")
    router = SignalRouter(registry)

    assert router.forward("peer-connected", {"socketId": "a"}, "b") is False
