"""Per-session state shared by the task controller and the command dispatcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from mousevr.channel.inbound import MessageChannel
from mousevr.io.logsink import TrialLogSink
from mousevr.protocols import RewardOutput, WorldAdapter
from mousevr.scheduler import DeferredScheduler
from mousevr.trial import SessionParameters, TrialRecord
from mousevr.utils._logger import get_logger

logger = get_logger(__name__)


@dataclass
class DisplayState:
    blanked: bool = False
    motion_connected: bool = False


class NullOutput:
    """Reward output used when no device is wired in."""

    def reward(self) -> None:
        return None

    def punishment_on(self) -> None:
        return None

    def punishment_off(self) -> None:
        return None


@dataclass
class SessionContext:
    """Everything one session owns; created at start, dropped at teardown."""

    parameters: SessionParameters
    world: WorldAdapter
    channel: MessageChannel
    scheduler: DeferredScheduler
    sink: TrialLogSink
    device: RewardOutput = field(default_factory=NullOutput)
    record: TrialRecord = field(default_factory=TrialRecord)
    display: DisplayState = field(default_factory=DisplayState)
    quit_requested: bool = False
    quit_reason: Optional[str] = None

    def log_trial(self) -> None:
        self.sink.record(self.record.snapshot())

    def log_parameters(self) -> None:
        self.sink.record(self.parameters.log_entry())

    def print_summary(self) -> None:
        logger.info(self.record.summary())

    def request_quit(self, reason: str = "") -> None:
        if not self.quit_requested:
            logger.info("Session termination requested%s", f" ({reason})" if reason else "")
        self.quit_requested = True
        self.quit_reason = reason or self.quit_reason
