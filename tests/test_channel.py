from __future__ import annotations

import threading

import pytest

from mousevr.channel.inbound import InboundMessage, MessageChannel


def test_drain_preserves_arrival_order() -> None:
    channel = MessageChannel()
    for n in range(5):
        assert channel.put(f"model.get_position('m{n}')".encode())

    messages = channel.drain()

    assert [m.payload for m in messages] == [f"model.get_position('m{n}')".encode() for n in range(5)]
    assert all(isinstance(m, InboundMessage) for m in messages)
    assert channel.drain() == []


def test_drain_on_empty_channel_returns_immediately() -> None:
    assert MessageChannel().drain() == []


def test_messages_are_timestamped() -> None:
    channel = MessageChannel()
    channel.put(b"reward", timestamp_ms=42)
    channel.put(b"reward")

    first, second = channel.drain()

    assert first.timestamp_ms == 42
    assert second.timestamp_ms > 0


def test_lines_split_multi_command_payloads() -> None:
    message = InboundMessage(b"console.toggle_motion\nreward", 0)
    assert message.lines() == ["console.toggle_motion", "reward"]


def test_overflow_drops_oldest() -> None:
    channel = MessageChannel(maxsize=3)
    for n in range(5):
        assert channel.put(str(n).encode())

    assert channel.dropped == 2
    assert [m.payload for m in channel.drain()] == [b"2", b"3", b"4"]


def test_invalid_size_rejected() -> None:
    with pytest.raises(ValueError):
        MessageChannel(maxsize=0)


def test_write_without_writer_is_dropped() -> None:
    channel = MessageChannel()
    assert not channel.write("0,0,0")


def test_write_encodes_text() -> None:
    sent: list[bytes] = []
    channel = MessageChannel()
    channel.set_writer(sent.append)

    assert channel.write("1,2,3")
    assert sent == [b"1,2,3"]


def test_closed_channel_refuses_traffic() -> None:
    sent: list[bytes] = []
    channel = MessageChannel()
    channel.set_writer(sent.append)
    channel.close()

    assert channel.closed
    assert not channel.put(b"reward")
    assert not channel.write(b"x")
    assert sent == []


def test_producer_thread_hand_off() -> None:
    channel = MessageChannel(maxsize=10_000)
    count = 500

    def produce() -> None:
        for n in range(count):
            channel.put(str(n).encode())

    thread = threading.Thread(target=produce)
    thread.start()
    received: list[bytes] = []
    while thread.is_alive() or len(channel):
        received.extend(m.payload for m in channel.drain())
    thread.join()
    received.extend(m.payload for m in channel.drain())

    assert received == [str(n).encode() for n in range(count)]
