"""Thread-safe hand-off between the network listener and the control loop."""

from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from mousevr.utils._logger import get_logger

logger = get_logger(__name__)

__all__ = ["InboundMessage", "MessageChannel", "monotonic_ms", "split_lines"]


def monotonic_ms() -> int:
    return time.monotonic_ns() // 1_000_000


def split_lines(payload: bytes) -> list[str]:
    """Decode a payload (undecodable bytes replaced) and split it on newlines."""
    return payload.decode("utf-8", errors="replace").split("\n")


@dataclass(frozen=True)
class InboundMessage:
    """Raw bytes received from the renderer, stamped on arrival."""

    payload: bytes
    timestamp_ms: int

    def lines(self) -> list[str]:
        """Split the payload into its newline-delimited commands."""
        return split_lines(self.payload)


class MessageChannel:
    """Bounded producer/consumer queue of :class:`InboundMessage`.

    The listener thread calls :meth:`put`; the control loop calls
    :meth:`drain` once per tick. Those two methods are the only thread
    boundary in the controller. Replies travel the other way through
    :meth:`write`, which hands bytes to whatever outbound writer the listener
    registered.
    """

    def __init__(self, maxsize: int = 1024) -> None:
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self._queue: queue.Queue[InboundMessage] = queue.Queue(maxsize=maxsize)
        self._writer: Optional[Callable[[bytes], None]] = None
        self._closed = threading.Event()
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    # producer side -------------------------------------------------------
    def put(self, payload: bytes, timestamp_ms: Optional[int] = None) -> bool:
        """Queue ``payload``; never blocks. Returns ``False`` once closed."""
        if self._closed.is_set():
            return False
        message = InboundMessage(bytes(payload), monotonic_ms() if timestamp_ms is None else timestamp_ms)
        while True:
            try:
                self._queue.put_nowait(message)
                return True
            except queue.Full:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    continue
                self.dropped += 1
                logger.warning("Inbound channel full; dropped oldest message")

    # consumer side -------------------------------------------------------
    def drain(self) -> list[InboundMessage]:
        """Return every message available right now, oldest first."""
        messages: list[InboundMessage] = []
        while True:
            try:
                messages.append(self._queue.get_nowait())
            except queue.Empty:
                return messages

    def __len__(self) -> int:
        return self._queue.qsize()

    # outbound ------------------------------------------------------------
    def set_writer(self, writer: Optional[Callable[[bytes], None]]) -> None:
        self._writer = writer

    def write(self, data: bytes | str) -> bool:
        if isinstance(data, str):
            data = data.encode("utf-8")
        writer = self._writer
        if writer is None or self._closed.is_set():
            logger.debug("No outbound writer; dropping reply %r", data)
            return False
        writer(data)
        return True

    def close(self) -> None:
        self._closed.set()
        self._writer = None
