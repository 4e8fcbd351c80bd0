"""Trial bookkeeping types shared by the task controller and the log sink."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from mousevr.schema.output import TaskParametersEntry, TrialLogEntry, parameters_entry, trial_entry

__all__ = [
    "Choice",
    "SessionParameters",
    "TrialRecord",
    "TrialState",
    "ZoneEvent",
]

ZONE_SEPARATOR = "_"
TRIGGER_MARKER = "r"


class TrialState(IntEnum):
    STANDBY = 0
    START = 1
    DELAY = 2
    CUE = 3
    SUCCESS = 4
    FAILURE = 5
    FAILURE_END = 6
    OTHER = 7


class Choice(IntEnum):
    NONE = 0
    LEFT = 1
    RIGHT = 2

    def opposite(self) -> "Choice":
        # Anything but LEFT maps to LEFT, so NONE never survives an alternation.
        return Choice.RIGHT if self is Choice.LEFT else Choice.LEFT


@dataclass(frozen=True)
class SessionParameters:
    """Per-session settings the controller reads but never changes."""

    subject: str
    task: str
    n_trial: int
    reward_amount_ul: int
    note: str = ""

    def log_entry(self) -> TaskParametersEntry:
        return parameters_entry(
            subject=self.subject,
            task=self.task,
            n_trial=self.n_trial,
            reward_amount_ul=self.reward_amount_ul,
            note=self.note,
        )


@dataclass
class TrialRecord:
    state: TrialState = TrialState.STANDBY
    trial: int = 0
    correct: int = 0
    reward_ul: int = 0
    target: Choice = Choice.NONE
    choice: Choice = Choice.NONE
    note: str = ""

    def reset(self) -> None:
        self.state = TrialState.STANDBY
        self.trial = 0
        self.correct = 0
        self.reward_ul = 0
        self.target = Choice.NONE
        self.choice = Choice.NONE
        self.note = ""

    def snapshot(self) -> TrialLogEntry:
        return trial_entry(
            state=self.state,
            trial=self.trial,
            correct=self.correct,
            target=self.target,
            choice=self.choice,
            reward_ul=self.reward_ul,
            note=self.note,
        )

    def summary(self) -> str:
        return f"trial: {self.trial}, correct: {self.correct}"


@dataclass(frozen=True)
class ZoneEvent:
    """A subject entered a trigger zone in the virtual environment.

    ``object_id`` is the lower-cased identifier of the zone object (``left``,
    ``end``, ``target``...), ``name`` the raw scene name it came from.
    """

    object_id: str
    trigger: bool = True
    name: str = ""

    @classmethod
    def from_name(cls, name: str) -> Optional["ZoneEvent"]:
        """Decode a scene object name such as ``_left_r_``.

        Only names that split into exactly two tokens, the second carrying the
        trigger marker, describe a trigger zone. Everything else is scenery
        and yields ``None``.
        """
        if not isinstance(name, str):
            return None
        tokens = name.strip(ZONE_SEPARATOR).split(ZONE_SEPARATOR)
        if len(tokens) != 2 or TRIGGER_MARKER not in tokens[1]:
            return None
        return cls(object_id=tokens[0].lower(), trigger=True, name=name)
