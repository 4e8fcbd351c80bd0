"""Capabilities the controller consumes from its collaborators."""

from __future__ import annotations

from typing import NamedTuple, Optional, Protocol, Union, runtime_checkable

__all__ = ["RewardOutput", "Vec3", "WorldAdapter"]


class Vec3(NamedTuple):
    """World coordinates, ``y`` pointing up."""

    x: float
    y: float
    z: float


@runtime_checkable
class WorldAdapter(Protocol):
    """Position/teleport/move surface of the rendering and physics layer."""

    def teleport(self, target: Union[str, Vec3], rotation_deg: Optional[float] = None) -> None:
        """Move the subject to a named waypoint or to a position (and yaw)."""
        ...

    def move_object(self, name: str, position: Vec3) -> None:
        ...

    def get_position(self, name: Optional[str] = None) -> Vec3:
        """Position of ``name``, or of the subject itself when ``None``."""
        ...

    def set_motion(self, connected: bool) -> None:
        ...

    def blank_display(self, blank: bool) -> None:
        ...


@runtime_checkable
class RewardOutput(Protocol):
    def reward(self) -> None:  # pragma: no cover - typing hook
        ...

    def punishment_on(self) -> None:  # pragma: no cover - typing hook
        ...

    def punishment_off(self) -> None:  # pragma: no cover - typing hook
        ...
