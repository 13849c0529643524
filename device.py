# device.py
from dataclasses import dataclass
from enum import Enum


class DeviceStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class Device:
    ip: str
    mac: str  # "Unknown" when the neighbor table has no entry
    vendor: str
    ssh_open: bool = False
    selected: bool = False
    status: DeviceStatus = DeviceStatus.PENDING
    transcript: str = ""

    def begin_adoption(self):
        """Marks a fresh adoption attempt; any previous transcript is cleared."""
        self.status = DeviceStatus.IN_PROGRESS
        self.transcript = ""

    def finish(self, transcript: str, ok: bool):
        self.transcript = transcript
        self.status = DeviceStatus.SUCCESS if ok else DeviceStatus.ERROR
