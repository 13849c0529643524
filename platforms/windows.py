# platforms/windows.py
import subprocess
from typing import Dict, List, Optional

from utils import format_mac

from .base import BasePlatform

CREATE_NO_WINDOW = 0x08000000


class WindowsPlatform(BasePlatform):
    """Windows: ``ping -n`` and the full ``arp -a`` table."""

    name = "windows"
    # The ARP cache is populated slightly after ping returns
    neighbor_settle = 0.05

    def ping_args(self, ip: str, timeout: float) -> List[str]:
        return ["ping", "-n", "1", "-w", str(int(timeout * 1000)), ip]

    def neighbor_args(self, ip: str) -> List[str]:
        return ["arp", "-a"]

    def subprocess_kwargs(self) -> Dict:
        return {"creationflags": getattr(subprocess, "CREATE_NO_WINDOW", CREATE_NO_WINDOW)}

    def parse_neighbor_output(self, output: str, ip: str) -> Optional[str]:
        """Parses ``192.168.1.1    aa-bb-cc-dd-ee-ff     dynamic`` rows."""
        for line in output.splitlines():
            parts = line.split()
            if len(parts) < 2 or parts[0] != ip:
                continue
            mac = format_mac(parts[1])
            if ":" in mac and len(mac) >= 17:
                return mac
        return None
