from mousevr.io.devices.base import BaseDevice
from mousevr.io.devices.serial_device import RewardSerialDevice

__all__ = ["BaseDevice", "RewardSerialDevice"]
