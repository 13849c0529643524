# platforms/base.py
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class BasePlatform(ABC):
    """Abstract base class for OS-specific liveness and neighbor-table probing."""

    name = "base"
    # Delay between a successful ping and reading the neighbor table.
    neighbor_settle = 0.0

    @abstractmethod
    def ping_args(self, ip: str, timeout: float) -> List[str]:
        """Returns the command line for a single ICMP echo to ip."""
        pass

    @abstractmethod
    def neighbor_args(self, ip: str) -> List[str]:
        """Returns the command line that lists the neighbor/ARP table."""
        pass

    @abstractmethod
    def parse_neighbor_output(self, output: str, ip: str) -> Optional[str]:
        """Extracts the uppercase hardware address for ip from the table output.

        Returns:
            The hardware address, or None if there is no usable entry.
        """
        pass

    def subprocess_kwargs(self) -> Dict:
        """Extra keyword arguments for asyncio.create_subprocess_exec."""
        return {}

    async def is_alive(self, ip: str, timeout: float) -> bool:
        """Sends one echo request; the exit status decides liveness."""
        args = self.ping_args(ip, timeout)
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
                **self.subprocess_kwargs(),
            )
        except OSError as e:
            logger.debug(f"Could not run {args[0]} for {ip}: {e}")
            return False

        try:
            await asyncio.wait_for(proc.wait(), timeout=timeout + 1.0)
        except asyncio.TimeoutError:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
            return False
        return proc.returncode == 0

    async def hardware_address(self, ip: str, timeout: float = 2.0) -> Optional[str]:
        """Looks up ip in the local neighbor table without sending any traffic."""
        if self.neighbor_settle:
            await asyncio.sleep(self.neighbor_settle)

        args = self.neighbor_args(ip)
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
                **self.subprocess_kwargs(),
            )
        except OSError as e:
            logger.debug(f"Could not run {args[0]} for {ip}: {e}")
            return None

        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
            logger.debug(f"Neighbor table lookup timed out for {ip}")
            return None
        return self.parse_neighbor_output(stdout.decode(errors="replace"), ip)
