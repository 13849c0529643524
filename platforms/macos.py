# platforms/macos.py
from typing import List, Optional

from utils import format_mac

from .base import BasePlatform


class MacOSPlatform(BasePlatform):
    """macOS: BSD ping and ``arp -n``."""

    name = "macos"

    def ping_args(self, ip: str, timeout: float) -> List[str]:
        # BSD ping's -W is in milliseconds
        return ["ping", "-c", "1", "-W", str(int(timeout * 1000)), ip]

    def neighbor_args(self, ip: str) -> List[str]:
        return ["arp", "-n", ip]

    def parse_neighbor_output(self, output: str, ip: str) -> Optional[str]:
        """Parses ``? (192.168.1.1) at 0:1b:44:aa:bb:cc on en0 ifscope [ethernet]``."""
        for line in output.splitlines():
            parts = line.split()
            if len(parts) < 4 or parts[1] != f"({ip})":
                continue
            mac = parts[3]
            # "(incomplete)" and similar placeholders have no colons
            if ":" in mac:
                return format_mac(mac)
        return None
