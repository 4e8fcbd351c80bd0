"""Stand-in world adapter for running the controller without a renderer."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple, Union

from mousevr.protocols import Vec3
from mousevr.utils._logger import get_logger

logger = get_logger("LoggingWorld")


class LoggingWorld:
    """Keep object positions in a dict and log every call.

    Waypoints resolve through ``waypoints``; unknown waypoints leave the
    subject where it is. ``calls`` keeps ``(method, args)`` tuples in order.
    """

    SELF = "player"

    def __init__(self, waypoints: Optional[Dict[str, Vec3]] = None) -> None:
        self.waypoints: Dict[str, Vec3] = dict(waypoints or {})
        self.positions: Dict[str, Vec3] = {self.SELF: Vec3(0.0, 0.0, 0.0)}
        self.rotation_deg = 0.0
        self.motion_connected = False
        self.blanked = False
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []

    def _note(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        logger.info("%s%s", method, args)

    def teleport(self, target: Union[str, Vec3], rotation_deg: Optional[float] = None) -> None:
        self._note("teleport", target, rotation_deg)
        if isinstance(target, str):
            target = self.waypoints.get(target, self.positions[self.SELF])
        self.positions[self.SELF] = Vec3(*target)
        if rotation_deg is not None:
            self.rotation_deg = float(rotation_deg)

    def move_object(self, name: str, position: Vec3) -> None:
        self._note("move_object", name, position)
        self.positions[name] = Vec3(*position)

    def get_position(self, name: Optional[str] = None) -> Vec3:
        self._note("get_position", name)
        return self.positions.get(name or self.SELF, Vec3(0.0, 0.0, 0.0))

    def set_motion(self, connected: bool) -> None:
        self._note("set_motion", connected)
        self.motion_connected = connected

    def blank_display(self, blank: bool) -> None:
        self._note("blank_display", blank)
        self.blanked = blank
