from __future__ import annotations

from typing import Any, Mapping

from mousevr import DeviceRegistry
from mousevr.io.devices import BaseDevice, RewardSerialDevice
from mousevr.utils._logger import get_logger


class HardwareManager():
    """
    Builds the session's peripherals from configuration and keeps references
    easily accessible. Shutdown is safe to call more than once.
    """

    def __init__(self, config: Mapping[str, Any]):
        self.logger = get_logger(f'{__name__}.{self.__class__.__name__}')
        self.config = config
        self.devices: dict[str, BaseDevice] = {}
        self.reward: RewardSerialDevice | None = None
        self._initialized = False

    def __repr__(self):
        return (
            "<HardwareManager>\n"
            f"  Devices: {list(self.devices.keys())}\n"
            "</HardwareManager>"
        )

    # ---- Public interface --------------------------------------------------

    def initialize(self) -> None:
        """Open every configured device. Failures leave the device absent."""
        if self._initialized:
            return
        self.logger.info("Initializing hardware devices...")
        self._init_reward()
        for name, device in self.devices.items():
            device.initialize()
        self._initialized = True

    def shutdown(self):
        """Shutdown all devices."""
        for name, device in self.devices.items():
            try:
                device.shutdown()
            except Exception as e:
                self.logger.error(f"Error shutting down {name}: {e}")
        self._initialized = False

    def get_device(self, device_id: str) -> BaseDevice | None:
        """Get a device by its ID."""
        return self.devices.get(device_id)

    def status(self) -> dict[str, dict[str, Any]]:
        return {name: device.status() for name, device in self.devices.items()}

    # ---- Device init -------------------------------------------------------

    def _init_reward(self):
        if "reward" in self.devices:
            return
        SerialClass = DeviceRegistry.get_class("serial") or RewardSerialDevice
        self.reward = SerialClass(
            self.config.get("com_port"),
            baudrate=int(self.config.get("baudrate", 115200)),
        )
        self.devices["reward"] = self.reward
