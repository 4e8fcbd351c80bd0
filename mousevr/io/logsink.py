"""Append-only sink for task log records."""

from __future__ import annotations

import json
from pathlib import Path
from typing import IO, Optional, Union

import pandas as pd

from mousevr.schema.output import LogEntry, TaskParametersEntry, TrialLogEntry, build_task_log
from mousevr.utils._logger import get_logger

logger = get_logger(__name__)


class TrialLogSink:
    """Keep log records in memory and, optionally, as JSON lines on disk."""

    def __init__(self, path: Optional[Union[str, Path]] = None) -> None:
        self.path = Path(path) if path else None
        self.entries: list[LogEntry] = []
        self._file: Optional[IO[str]] = None
        self._closed = False
        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = self.path.open("a", encoding="utf-8")

    def record(self, entry: LogEntry) -> None:
        if self._closed:
            logger.debug("Sink closed; ignoring %s record", entry.kind)
            return
        self.entries.append(entry)
        if self._file is not None:
            self._file.write(json.dumps(entry.as_dict()) + "\n")
            self._file.flush()

    @property
    def parameters(self) -> Optional[TaskParametersEntry]:
        for entry in self.entries:
            if isinstance(entry, TaskParametersEntry):
                return entry
        return None

    @property
    def trials(self) -> list[TrialLogEntry]:
        return [entry for entry in self.entries if isinstance(entry, TrialLogEntry)]

    def to_dataframe(self) -> pd.DataFrame:
        """Trial records as a DataFrame, one row per state transition."""
        rows = [entry.as_dict() for entry in self.trials]
        columns = ["kind", "state", "trial", "correct", "target", "choice", "reward_ul", "note", "time"]
        return pd.DataFrame(rows, columns=columns)

    def save(self, path: Union[str, Path]) -> Path:
        """Write the whole session as a single JSON document."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as fh:
            json.dump(build_task_log(self.parameters, self.trials), fh, indent=2)
        return path

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._file is not None:
            self._file.close()
            self._file = None


__all__ = ["TrialLogSink"]
