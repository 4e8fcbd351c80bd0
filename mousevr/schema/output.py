"""Schema helpers for mousevr task logs.

Two record kinds leave the trial controller: a :class:`TrialLogEntry` for
every state transition and a single :class:`TaskParametersEntry` written when
the session starts. Both are frozen so the sink can hold on to them without
copying.

Usage
-----
>>> from mousevr.schema.output import build_task_log
>>> payload = build_task_log(parameters_entry, trial_entries)
>>> json.dump(payload, open(path, "w"), indent=2)

The current task log schema is version ``1.0``.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Sequence

TASKLOG_SCHEMA_VERSION = "1.0"
TASKLOG_SCHEMA_ID = f"mousevr.tasklog/{TASKLOG_SCHEMA_VERSION}"


def _now() -> str:
    return datetime.now().astimezone().isoformat()


@dataclass(frozen=True)
class TrialLogEntry:
    """Snapshot of the trial record taken at a state transition."""

    state: str
    trial: int
    correct: int
    target: str
    choice: str
    reward_ul: int
    note: str
    time: str

    kind = "trial"

    def as_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, **asdict(self)}


@dataclass(frozen=True)
class TaskParametersEntry:
    """Session parameters, logged once per session."""

    subject: str
    task: str
    n_trial: int
    reward_amount_ul: int
    note: str
    time: str

    kind = "parameters"

    def as_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, **asdict(self)}


LogEntry = TrialLogEntry | TaskParametersEntry


def trial_entry(
    *,
    state: Any,
    trial: int,
    correct: int,
    target: Any,
    choice: Any,
    reward_ul: int,
    note: str,
) -> TrialLogEntry:
    return TrialLogEntry(
        state=_enum_name(state),
        trial=int(trial),
        correct=int(correct),
        target=_enum_name(target),
        choice=_enum_name(choice),
        reward_ul=int(reward_ul),
        note=str(note),
        time=_now(),
    )


def parameters_entry(
    *,
    subject: str,
    task: str,
    n_trial: int,
    reward_amount_ul: int,
    note: str,
) -> TaskParametersEntry:
    return TaskParametersEntry(
        subject=str(subject),
        task=str(task),
        n_trial=int(n_trial),
        reward_amount_ul=int(reward_amount_ul),
        note=str(note),
        time=_now(),
    )


def build_task_log(
    parameters: TaskParametersEntry | None,
    trials: Sequence[TrialLogEntry],
) -> dict[str, Any]:
    """Build a JSON-serializable dictionary describing a whole session."""

    return {
        "schema": TASKLOG_SCHEMA_ID,
        "created": _now(),
        "parameters": parameters.as_dict() if parameters else None,
        "trials": [entry.as_dict() for entry in trials],
        "summary": _summary(trials),
    }


# ---------------------------------------------------------------------------
# Internal helpers.


def _enum_name(value: Any) -> str:
    if isinstance(value, Enum):
        return value.name
    return str(value)


def _summary(trials: Sequence[TrialLogEntry]) -> dict[str, Any]:
    states: Counter[str] = Counter(entry.state for entry in trials)
    last = trials[-1] if trials else None
    return {
        "transitions": len(trials),
        "states": dict(states),
        "trials": last.trial if last else 0,
        "correct": last.correct if last else 0,
        "reward_ul": last.reward_ul if last else 0,
    }


__all__ = [
    "LogEntry",
    "TASKLOG_SCHEMA_ID",
    "TaskParametersEntry",
    "TrialLogEntry",
    "build_task_log",
    "parameters_entry",
    "trial_entry",
]
