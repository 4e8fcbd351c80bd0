"""
Session wiring and the control loop.

A :class:`Session` is the explicit context object for one experiment run: it
owns the trial record, the task controller, the command dispatcher, the
deferred scheduler, the inbound channel and its listener, the reward device
and the log sink. Nothing here is global; everything is created when the
session is built and released by :meth:`Session.shutdown`.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Optional, Union

import numpy as np

from mousevr.channel.command_protocol import CommandDispatcher
from mousevr.channel.inbound import MessageChannel
from mousevr.channel.listener import ZmqStreamListener
from mousevr.context import NullOutput, SessionContext
from mousevr.hardware import HardwareManager
from mousevr.io.logsink import TrialLogSink
from mousevr.protocols import WorldAdapter
from mousevr.protocols.task_logic import TaskController
from mousevr.scheduler import DeferredScheduler
from mousevr.trial import SessionParameters, TrialRecord, ZoneEvent
from mousevr.utils._logger import get_logger, log_this_fr
from mousevr.utils.config import SessionConfig


class Session:
    """High level class describing one closed-loop task session."""

    def __init__(
        self,
        config: SessionConfig,
        world: WorldAdapter,
        *,
        channel: Optional[MessageChannel] = None,
        listener: Optional[ZmqStreamListener] = None,
        hardware: Optional[HardwareManager] = None,
        sink: Optional[TrialLogSink] = None,
        scheduler: Optional[DeferredScheduler] = None,
        rng: Optional[np.random.Generator] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.parameters: SessionParameters = config.parameters()
        self.logger = get_logger(f"SESSION.{self.parameters.subject or 'anonymous'}")

        self.clock = clock
        self.channel = channel or MessageChannel()
        self.scheduler = scheduler or DeferredScheduler(clock)
        self.hardware = hardware or HardwareManager(config)
        self.sink = sink or TrialLogSink(config.get("log_path") or None)
        if listener is None and config.get("enable_socket", True):
            listener = ZmqStreamListener(
                self.channel,
                host=config.get("socket_host", "127.0.0.1"),
                port=int(config.get("socket_port", 22223)),
            )
        self.listener = listener

        self.context = SessionContext(
            parameters=self.parameters,
            world=world,
            channel=self.channel,
            scheduler=self.scheduler,
            sink=self.sink,
        )
        self.controller = TaskController(
            self.context,
            punishment_latency=config.get("punishment_latency", 2.0),
            punishment_duration=config.get("punishment_duration", 6.0),
            start_waypoint=config.get("start_waypoint", "10"),
            origin_waypoint=config.get("origin_waypoint", "0"),
            rng=rng if rng is not None else np.random.default_rng(config.get("rng_seed")),
        )
        self.dispatcher = CommandDispatcher(self.context)

        self._started = False
        self._closed = False
        self.logger.info(f"Initialized session: task={self.parameters.task!r}, trials={self.parameters.n_trial}")

    # ------------------------------------------------------------------
    # Convenience accessors

    @property
    def record(self) -> TrialRecord:
        return self.context.record

    @property
    def quit_requested(self) -> bool:
        return self.context.quit_requested

    @property
    def running(self) -> bool:
        return self._started and not self._closed

    # ------------------------------------------------------------------
    # Lifecycle

    @log_this_fr
    def start(self) -> None:
        """Open the device, start listening and arm the task."""
        if self._closed:
            raise RuntimeError("Session has already been shut down")
        if self._started:
            return

        self.hardware.initialize()
        self.context.device = self.hardware.reward or NullOutput()
        if self.listener is not None:
            self.listener.start()
        self.controller.start_session()
        self._started = True
        self.logger.info("================= Session started ===================")

    def tick(self, now: Optional[float] = None) -> bool:
        """Run one control-loop iteration; return ``True`` once quit was requested."""
        for message in self.channel.drain():
            self.dispatcher.dispatch_lines(message.lines())
        self.scheduler.run_due(now)
        self.controller.tick()
        return self.context.quit_requested

    def on_zone(self, zone: Union[str, ZoneEvent]) -> None:
        """Feed a zone crossing from the collision layer."""
        event = zone if isinstance(zone, ZoneEvent) else ZoneEvent.from_name(zone)
        if event is None:
            return
        self.controller.on_zone(event)

    def reset(self) -> None:
        self.controller.reset()

    def request_quit(self, reason: str = "") -> None:
        self.context.request_quit(reason)

    def run(self, *, max_ticks: Optional[int] = None, sleep: Callable[[float], Any] = time.sleep) -> None:
        """Tick until quit is requested (or ``max_ticks``), then shut down."""
        interval = float(self.config.get("tick_interval", 1.0 / 60.0))
        self.start()
        ticks = 0
        try:
            while not self.tick():
                ticks += 1
                if max_ticks is not None and ticks >= max_ticks:
                    break
                sleep(interval)
        except KeyboardInterrupt:
            self.logger.info("Interrupted by user")
        finally:
            self.shutdown()

    @log_this_fr
    def shutdown(self) -> None:
        """Release every resource; safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        pending = self.scheduler.pending()
        if pending:
            self.logger.debug("Dropping pending callbacks: %s", pending)
        self.scheduler.clear()
        if self.listener is not None:
            self.listener.stop()
        self.hardware.shutdown()
        self.channel.close()
        self.sink.close()
        self.logger.info(f"Session finished: {self.record.summary()}")

    def __enter__(self) -> "Session":
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()


def create_session(
    world: WorldAdapter,
    *,
    config: Optional[SessionConfig] = None,
    config_path: Optional[str] = None,
    overrides: Optional[dict[str, Any]] = None,
    **kwargs: Any,
) -> Session:
    """Instantiate a session from an existing or newly loaded configuration."""

    if config is None:
        if not config_path:
            raise ValueError("Provide either config or config_path")
        config = SessionConfig.from_file(config_path)
    if overrides:
        config = SessionConfig.from_mapping({**config.as_dict(), **overrides})
    return Session(config, world, **kwargs)
