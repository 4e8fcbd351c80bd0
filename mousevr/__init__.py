from __future__ import annotations

from typing import Any, Callable, TypeVar

T = TypeVar("T")

__version__ = "0.1.0"

__all__ = ["DeviceRegistry", "__version__"]


class DeviceRegistry:
    """Maps a device type name (``"serial"``) to the class that drives it."""

    _registry: dict[str, type[Any]] = {}

    @classmethod
    def register(cls, device_type: str) -> Callable[[type[T]], type[T]]:
        def decorator(device_class: type[T]) -> type[T]:
            cls._registry[device_type.lower()] = device_class
            return device_class
        return decorator

    @classmethod
    def get_class(cls, device_type: str) -> type[Any] | None:
        return cls._registry.get(device_type.lower())

    @classmethod
    def types(cls) -> list[str]:
        return sorted(cls._registry)
