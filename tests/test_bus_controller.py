import queue

from msgbus.bus_controller import BusController, Remote
from msgbus.errors import Disconnected
from msgbus.label import TrueOp, label
from msgbus.message import (
    AckKind,
    BytesMessage,
    ConnectMessage,
    ConnectMessageAck,
    EncodedMessage,
    Message,
    Selector,
)
from msgbus.version import Version, version


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class ClosedQueue:
    def put(self, item):
        raise Disconnected()


def make_controller(local=None, clock=None):
    return BusController(
        label("controller"), "token", local if local is not None else queue.Queue(), clock or FakeClock()
    )


def connect_msg(remote, lbl, token="token", ver=None):
    encoded = Message(
        Selector.unicast(TrueOp()), ConnectMessage(ver or version(), token, lbl)
    ).into_encoded()
    encoded.reply_remote = remote
    return encoded


def last_ack(remote):
    enc = remote.inbox[-1]
    return ConnectMessageAck.decode(enc.selector.uuid, enc.payload_data)


def data_msg(selector):
    return Message(selector, BytesMessage(0, b"\x00\x01\x02\x03")).into_encoded()


def test_connect_ok():
    ctl = make_controller()
    remote = Remote()
    assert ctl.endpoint_connect(connect_msg(remote, label("moon"))) is True
    assert last_ack(remote).kind is AckKind.OK
    assert len(ctl.endpoints) == 1
    assert ctl.endpoints[0].id == last_ack(remote).endpoint_id


def test_connect_wrong_token():
    ctl = make_controller()
    remote = Remote()
    assert ctl.endpoint_connect(connect_msg(remote, label("moon"), token="secret")) is False
    assert last_ack(remote).kind is AckKind.ERR_TOKEN
    assert ctl.endpoints == []


def test_connect_incompatible_version():
    ctl = make_controller()
    remote = Remote()
    assert ctl.endpoint_connect(connect_msg(remote, label("moon"), ver=Version(1, 0, 0))) is False
    assert last_ack(remote) == ConnectMessageAck.err_version(version())


def test_connect_garbage_payload():
    ctl = make_controller()
    remote = Remote()
    sel = Selector.unicast(TrueOp())
    sel.uuid = ConnectMessage.UUID
    encoded = EncodedMessage(sel, b"\xff", reply_remote=remote)
    assert ctl.endpoint_connect(encoded) is False
    assert last_ack(remote).kind is AckKind.ERR_VERSION


def test_connect_without_remote():
    ctl = make_controller()
    encoded = connect_msg(None, label("moon"))
    assert ctl.endpoint_connect(encoded) is False
    assert ctl.endpoints == []


def test_duplicate_connect_rejected():
    ctl = make_controller()
    remote = Remote()
    assert ctl.endpoint_connect(connect_msg(remote, label("moon"))) is True
    assert ctl.endpoint_connect(connect_msg(remote, label("moon"))) is False
    assert len(ctl.endpoints) == 1


def test_unicast_routes_to_one():
    ctl = make_controller()
    a, b = Remote(), Remote()
    ctl.process(connect_msg(a, label("moon")))
    ctl.process(connect_msg(b, label("moon")))
    a.inbox.clear()
    b.inbox.clear()
    msg = data_msg(Selector.unicast("moon"))
    ctl.process(msg)
    assert len(a.inbox) + len(b.inbox) == 1


def test_multicast_routes_to_all_and_local():
    local = queue.Queue()
    ctl = make_controller(local)
    a, b = Remote(), Remote()
    ctl.process(connect_msg(a, label("moon")))
    ctl.process(connect_msg(b, label("sun")))
    a.inbox.clear()
    b.inbox.clear()
    msg = data_msg(Selector.multicast(TrueOp()))
    ctl.process(msg)
    assert list(a.inbox) == [msg]
    assert list(b.inbox) == [msg]
    assert local.get_nowait() is msg


def test_unicast_local_delivery():
    local = queue.Queue()
    ctl = make_controller(local)
    msg = data_msg(Selector.unicast("controller"))
    remain, connected = ctl.handle_message(msg)
    assert remain is None and connected is False
    assert local.get_nowait() is msg


def test_unroutable_with_ttl_is_buffered_then_delivered():
    clock = FakeClock()
    ctl = make_controller(clock=clock)
    sel = Selector.unicast("moon")
    sel.ttl = 2.0
    msg = data_msg(sel)
    ctl.process(msg)
    assert len(ctl.message_buffer) == 1
    remote = Remote()
    clock.now += 1
    ctl.process(connect_msg(remote, label("moon")))
    assert remote.inbox[-1] is msg
    assert ctl.message_buffer == []


def test_unroutable_without_ttl_dropped():
    ctl = make_controller()
    ctl.process(data_msg(Selector.unicast("nobody")))
    assert ctl.message_buffer == []


def test_buffer_expires():
    clock = FakeClock()
    ctl = make_controller(clock=clock)
    sel = Selector.unicast("moon")
    sel.ttl = 2.0
    ctl.process(data_msg(sel))
    ctl.maintain(clock.now + 3)
    assert ctl.message_buffer == []


def test_disconnected_endpoint_removed():
    ctl = make_controller()
    remote = Remote()
    ctl.process(connect_msg(remote, label("moon")))
    remote.close()
    remain, _ = ctl.handle_message(data_msg(Selector.unicast("moon")))
    assert ctl.endpoints == []
    assert remain is not None


def test_local_reader_gone_keeps_message():
    ctl = make_controller(ClosedQueue())
    msg = data_msg(Selector.unicast("controller"))
    remain, _ = ctl.handle_message(msg)
    assert remain is msg


def test_detect_reachable_after_interval():
    clock = FakeClock()
    ctl = make_controller(clock=clock)
    remote = Remote()
    ctl.process(connect_msg(remote, label("moon")))
    remote.close()
    ctl.detect_reachable(clock.now + 10)
    assert len(ctl.endpoints) == 1
    ctl.detect_reachable(clock.now + 31)
    assert ctl.endpoints == []