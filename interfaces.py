# interfaces.py
import socket
import logging
import ipaddress
from dataclasses import dataclass
from typing import List, Optional

import psutil

from utils import format_ip

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetworkInterface:
    name: str
    ip: str
    start_ip: str
    end_ip: str
    cidr: str

    def __str__(self):
        return f"{self.name} - {self.ip} ({self.cidr})"


def calculate_network_range(ip: str, netmask: str):
    """Returns (first host, last host, cidr) for the network containing ip."""
    network = ipaddress.IPv4Network(f"{ip}/{netmask}", strict=False)
    first = int(network.network_address)
    last = int(network.broadcast_address)
    # /31 and /32 have no separate network and broadcast addresses
    if network.prefixlen < 31:
        first, last = first + 1, last - 1
    return format_ip(first), format_ip(last), str(network)


def get_local_networks() -> List[NetworkInterface]:
    """Lists the IPv4 networks of all non-loopback interfaces."""
    networks = []
    for name, addresses in psutil.net_if_addrs().items():
        for address in addresses:
            if address.family != socket.AF_INET or not address.netmask:
                continue
            try:
                if ipaddress.IPv4Address(address.address).is_loopback:
                    continue
                start_ip, end_ip, cidr = calculate_network_range(address.address, address.netmask)
            except ValueError as e:
                logger.debug(f"Ignoring address {address.address} on {name}: {e}")
                continue
            networks.append(NetworkInterface(name, address.address, start_ip, end_ip, cidr))
    return networks


def _private_rank(ip: str) -> int:
    octets = [int(part) for part in ip.split(".")]
    if octets[0] == 192 and octets[1] == 168:
        return 0
    if octets[0] == 10:
        return 1
    if octets[0] == 172 and 16 <= octets[1] <= 31:
        return 2
    return 3


def get_default_network(networks: Optional[List[NetworkInterface]] = None) -> Optional[NetworkInterface]:
    """Picks the network to scan by default.

    Prefers 192.168.x.x, then 10.x.x.x, then 172.16-31.x.x, then whatever
    was found first.
    """
    if networks is None:
        networks = get_local_networks()
    if not networks:
        return None
    return min(networks, key=lambda net: _private_rank(net.ip))
