"""Network listener feeding the inbound channel, backed by ZeroMQ."""

from __future__ import annotations

import queue
import threading
from typing import Optional

import zmq

from mousevr.channel.inbound import MessageChannel
from mousevr.utils._logger import get_logger

logger = get_logger("ChannelListener")


class ZmqStreamListener:
    """Accept raw TCP peers on a ZeroMQ ``STREAM`` socket.

    The socket lives entirely in the listener thread: incoming frames are
    pushed onto the :class:`MessageChannel`, and replies written to the
    channel are queued here and sent from the same thread to the most recent
    peer. Connection and disconnection show up as empty frames and are only
    used for peer bookkeeping.
    """

    def __init__(
        self,
        channel: MessageChannel,
        *,
        host: str = "127.0.0.1",
        port: int = 22223,
        poll_ms: int = 50,
        context: Optional[zmq.Context] = None,
    ) -> None:
        self.channel = channel
        # Port 0 asks ZeroMQ for an ephemeral port; see ``endpoint`` after start().
        self.endpoint = f"tcp://{host}:{port or '*'}"
        self.poll_ms = poll_ms
        self._ctx = context or zmq.Context.instance()
        self._socket: Optional[zmq.Socket] = None
        self._thread: Optional[threading.Thread] = None
        self._running = threading.Event()
        self._outbox: queue.Queue[bytes] = queue.Queue()
        self._peers: list[bytes] = []

    @property
    def running(self) -> bool:
        return self._running.is_set()

    @property
    def peer_count(self) -> int:
        return len(self._peers)

    # ------------------------------------------------------------------
    # lifecycle
    def start(self) -> bool:
        if self._running.is_set():
            return True
        sock = self._ctx.socket(zmq.STREAM)
        sock.setsockopt(zmq.LINGER, 0)
        try:
            sock.bind(self.endpoint)
        except zmq.ZMQError as exc:
            logger.error("Could not bind %s: %s", self.endpoint, exc)
            sock.close(linger=0)
            return False
        self.endpoint = sock.getsockopt_string(zmq.LAST_ENDPOINT)
        self._socket = sock
        self.channel.set_writer(self._outbox.put)
        self._running.set()
        self._thread = threading.Thread(target=self._loop, name="mousevr-listener", daemon=True)
        self._thread.start()
        logger.info("Listening on %s", self.endpoint)
        return True

    def stop(self, timeout: float = 1.0) -> None:
        if not self._running.is_set() and self._thread is None:
            return
        self._running.clear()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None
        self.channel.set_writer(None)
        if self._socket is not None:
            try:
                self._socket.close(linger=0)
            except zmq.ZMQError:
                pass
        self._socket = None
        self._peers.clear()
        logger.info("Stopped listening on %s", self.endpoint)

    # ------------------------------------------------------------------
    # internal helpers
    def _loop(self) -> None:
        assert self._socket is not None
        sock = self._socket
        poller = zmq.Poller()
        poller.register(sock, zmq.POLLIN)
        while self._running.is_set():
            try:
                events = dict(poller.poll(self.poll_ms))
                if sock in events:
                    self._receive(sock)
                self._flush_outbox(sock)
            except zmq.ZMQError as exc:
                if not self._running.is_set():
                    break
                logger.error("Listener socket error: %s", exc)

    def _receive(self, sock: zmq.Socket) -> None:
        while True:
            try:
                identity, data = sock.recv_multipart(flags=zmq.NOBLOCK)
            except zmq.Again:
                return
            if not data:
                self._track_peer(identity)
                continue
            if identity not in self._peers:
                self._peers.append(identity)
            self.channel.put(data)

    def _track_peer(self, identity: bytes) -> None:
        if identity in self._peers:
            self._peers.remove(identity)
            logger.info("Peer disconnected")
        else:
            self._peers.append(identity)
            logger.info("Peer connected")

    def _flush_outbox(self, sock: zmq.Socket) -> None:
        while True:
            try:
                data = self._outbox.get_nowait()
            except queue.Empty:
                return
            if not self._peers:
                logger.debug("No connected peer; dropping reply %r", data)
                continue
            sock.send_multipart([self._peers[-1], data])


__all__ = ["ZmqStreamListener"]
