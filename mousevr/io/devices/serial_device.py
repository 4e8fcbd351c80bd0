"""Serial link to the reward/punishment microcontroller (Teensy or BCS)."""

from __future__ import annotations

from typing import Any, Optional

import serial

from mousevr import DeviceRegistry
from mousevr.io.devices.base import BaseDevice

REWARD = b"r"
PUNISHMENT_ON = b"p"
PUNISHMENT_OFF = b"0"


@DeviceRegistry.register("serial")
class RewardSerialDevice(BaseDevice):
    """Best-effort serial output.

    If the port cannot be opened the device stays absent and every output
    call becomes a no-op, so the task keeps running without hardware.
    """

    device_type = "serial"

    def __init__(
        self,
        port: Optional[str],
        baudrate: int = 115200,
        *,
        device_id: str = "reward",
        timeout: Optional[float] = 1.0,
    ) -> None:
        super().__init__(device_id=device_id)
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self._serial: Optional[serial.Serial] = None
        self.writes = 0

    @property
    def is_open(self) -> bool:
        return self._serial is not None and bool(self._serial.is_open)

    def _open(self) -> None:
        if self.is_open:
            return
        if not self.port:
            self.logger.info("No serial port configured; reward output disabled")
            return
        try:
            self._serial = serial.Serial(self.port, self.baudrate, timeout=self.timeout)
        except (serial.SerialException, OSError, ValueError) as exc:
            self._serial = None
            self.logger.warning("%s is not available: %s", self.port, exc)
            return
        self.mark_open()
        self.logger.info("Opened %s at %d baud", self.port, self.baudrate)

    def _close(self) -> None:
        if self._serial is None:
            return
        port, self._serial = self._serial, None
        try:
            if port.is_open:
                port.close()
        finally:
            self.mark_closed()
            self.logger.info("Closed %s", self.port)

    def _write(self, code: bytes) -> None:
        if not self.is_open:
            return
        assert self._serial is not None
        self._serial.write(code)
        self.writes += 1

    # output ------------------------------------------------------------
    def reward(self) -> None:
        self._guard("reward", self._write, REWARD)

    def punishment_on(self) -> None:
        self._guard("punishment_on", self._write, PUNISHMENT_ON)

    def punishment_off(self) -> None:
        self._guard("punishment_off", self._write, PUNISHMENT_OFF)

    def status(self) -> dict[str, Any]:
        info = super().status()
        info.update({"port": self.port, "baudrate": self.baudrate, "open": self.is_open, "writes": self.writes})
        return info


__all__ = ["RewardSerialDevice", "REWARD", "PUNISHMENT_ON", "PUNISHMENT_OFF"]
