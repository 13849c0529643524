# platforms/linux.py
import math
from typing import List, Optional

from utils import format_mac

from .base import BasePlatform


class LinuxPlatform(BasePlatform):
    """Linux: iputils ping and the ``ip neigh`` table."""

    name = "linux"

    def ping_args(self, ip: str, timeout: float) -> List[str]:
        # -W takes whole seconds
        return ["ping", "-c", "1", "-W", str(max(1, math.ceil(timeout))), ip]

    def neighbor_args(self, ip: str) -> List[str]:
        return ["ip", "neigh", "show"]

    def parse_neighbor_output(self, output: str, ip: str) -> Optional[str]:
        """Parses lines like ``192.168.1.1 dev eth0 lladdr aa:bb:cc:dd:ee:ff REACHABLE``.

        FAILED and INCOMPLETE entries carry no ``lladdr`` and are skipped.
        """
        for line in output.splitlines():
            parts = line.split()
            if not parts or parts[0] != ip:
                continue
            if "lladdr" in parts:
                index = parts.index("lladdr")
                if index + 1 < len(parts):
                    return format_mac(parts[index + 1])
        return None
