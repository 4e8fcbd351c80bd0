from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional, TypeVar

from mousevr.utils._logger import get_logger

R = TypeVar("R")


class BaseDevice:
    """Base class for the rig's output peripherals.

    Every public call is funnelled through :meth:`_guard`. A peripheral that
    raises (cable pulled, port reset, firmware hiccup) gets the error logged
    and counted, and the caller receives ``None`` instead of an exception.
    Subclasses implement ``_open`` and ``_close``.
    """

    device_id: str = "device"
    device_type: str = "generic"

    def __init__(self, *, device_id: Optional[str] = None, logger_name: Optional[str] = None) -> None:
        if device_id is not None:
            self.device_id = device_id
        self.is_active = False
        self.opened_at: Optional[datetime] = None
        self.closed_at: Optional[datetime] = None
        self.failures = 0
        self.last_error: Optional[str] = None
        self.logger = get_logger(logger_name or f"{__name__}.{self.__class__.__name__}")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.device_id!r} active={self.is_active}>"

    def _guard(self, action: str, func: Callable[..., R], *args: Any, **kwargs: Any) -> Optional[R]:
        try:
            return func(*args, **kwargs)
        except Exception as exc:
            self.failures += 1
            self.last_error = f"{action}: {exc}"
            self.logger.exception("%s failed on %s (%s)", action, self.device_id, self.device_type)
            return None

    def mark_open(self) -> None:
        self.opened_at = datetime.now()
        self.is_active = True

    def mark_closed(self) -> None:
        self.closed_at = datetime.now()
        self.is_active = False

    # lifecycle -----------------------------------------------------------
    def initialize(self) -> None:
        self._guard("initialize", self._open)

    def shutdown(self) -> None:
        self._guard("shutdown", self._close)

    def status(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "device_type": self.device_type,
            "active": self.is_active,
            "opened_at": self.opened_at,
            "closed_at": self.closed_at,
            "failures": self.failures,
            "last_error": self.last_error,
        }

    def _open(self) -> None:
        return None

    def _close(self) -> None:
        return None
