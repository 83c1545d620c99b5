import pytest

from keysynth.canbus import RX_FIFO_DEPTH, TX_MAILBOXES, CanBus, CanError, CanMessage


def _bus(loopback=False):
    bus = CanBus(loopback=loopback)
    bus.set_filter(0x123, 0x7FF)
    bus.start()
    return bus


def test_loopback_round_trip():
    bus = _bus(loopback=True)
    bus.transmit(0x123, b"P\x04\x03")
    sent = bus.complete_transmission()
    received = bus.receive()
    assert received == sent
    assert received.can_id == 0x123
    assert received.data == b"P\x04\x03" + bytes(5)


def test_filter_rejects_other_ids():
    bus = _bus()
    assert bus.deliver(0x124, b"P") is False
    assert bus.rx_level() == 0
    assert bus.deliver(0x123, b"P") is True
    assert bus.rx_level() == 1


def test_default_filter_accepts_everything():
    bus = CanBus()
    bus.set_filter()
    bus.start()
    assert bus.deliver(0x456, b"S") is True
    assert bus.receive().can_id == 0x456


def test_without_filter_nothing_is_received():
    bus = CanBus()
    bus.start()
    assert bus.deliver(0x123, b"S") is False


def test_not_started():
    bus = CanBus()
    bus.set_filter()
    with pytest.raises(CanError):
        bus.transmit(0x123, b"T")
    assert bus.deliver(0x123, b"T") is False


def test_start_twice_fails():
    bus = _bus()
    with pytest.raises(CanError):
        bus.start()


def test_mailboxes_fill_and_free():
    bus = _bus()
    for i in range(TX_MAILBOXES):
        bus.transmit(0x123, bytes([i]))
    assert bus.free_mailboxes == 0
    with pytest.raises(CanError):
        bus.transmit(0x123, b"x")
    first = bus.complete_transmission()
    assert first.data[0] == 0
    bus.transmit(0x123, b"x")
    while bus.free_mailboxes < TX_MAILBOXES:
        bus.complete_transmission()
    assert [m.data[0] for m in bus.sent] == [0, 1, 2, ord("x")]


def test_callbacks_fire():
    bus = _bus()
    events = []
    bus.on_receive(lambda: events.append("rx"))
    bus.on_transmit(lambda: events.append("tx"))
    bus.deliver(0x123, b"C")
    bus.transmit(0x123, b"M")
    bus.complete_transmission()
    assert events == ["rx", "tx"]


def test_full_fifo_overwrites_newest():
    bus = _bus()
    for i in range(RX_FIFO_DEPTH + 1):
        bus.deliver(0x123, bytes([i]))
    assert bus.rx_level() == RX_FIFO_DEPTH
    order = [bus.receive().data[0] for _ in range(RX_FIFO_DEPTH)]
    assert order == [0, 1, RX_FIFO_DEPTH]


def test_empty_queues_raise():
    bus = _bus()
    with pytest.raises(CanError):
        bus.receive()
    with pytest.raises(CanError):
        bus.complete_transmission()


def test_payload_too_long():
    bus = _bus()
    with pytest.raises(ValueError):
        bus.transmit(0x123, bytes(9))
    with pytest.raises(ValueError):
        CanMessage(0x123, bytes(9))
    with pytest.raises(ValueError):
        CanMessage(0x800, bytes(8))