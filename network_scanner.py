# network_scanner.py
import asyncio
import logging
import ipaddress
from typing import List, Mapping, Optional

from device import Device, DeviceStatus
from platforms import BasePlatform, get_platform
from utils import UNKNOWN_MAC, enumerate_range
from vendors import VendorResolver, get_default_resolver

logger = logging.getLogger(__name__)

DEFAULT_SCAN_SETTINGS = {
    "ping_timeout": 1.0,
    "port_timeout": 0.5,
    "ssh_port": 22,
    "max_concurrency": 256,
    "neighbor_timeout": 2.0,
}

def _setting(config: Optional[Mapping], key: str):
    if config is not None and config.get(key) is not None:
        return config.get(key)
    return DEFAULT_SCAN_SETTINGS[key]

async def check_port(ip: str, port: int, timeout: float) -> bool:
    """Attempts a TCP connection; any failure just means the port is closed."""
    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(ip, port), timeout=timeout)
    except (OSError, asyncio.TimeoutError) as e:
        logger.debug(f"Port {port} closed on {ip}: {e!r}")
        return False
    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass
    return True

async def scan_host(ip: str, resolver: VendorResolver, platform: BasePlatform,
                     config: Optional[Mapping] = None) -> Optional[Device]:
    """Checks a single address.

    Returns:
        A pending Device record, or None if the host did not answer the ping.
    """
    if not await platform.is_alive(ip, _setting(config, "ping_timeout")):
        logger.debug(f"No reply from {ip}")
        return None

    ssh_open = await check_port(ip, _setting(config, "ssh_port"), _setting(config, "port_timeout"))

    mac = await platform.hardware_address(ip, _setting(config, "neighbor_timeout"))
    if mac is None:
        logger.debug(f"No neighbor entry for {ip}")
        mac = UNKNOWN_MAC

    device = Device(
        ip=ip,
        mac=mac,
        vendor=resolver.resolve(mac),
        ssh_open=ssh_open,
        selected=False,
        status=DeviceStatus.PENDING,
        transcript="",
    )
    logger.debug(f"Found device: {device.ip} {device.mac} ({device.vendor}) ssh={ssh_open}")
    return device

async def scan_network(start_ip: str, end_ip: str, resolver: Optional[VendorResolver] = None,
                       platform: Optional[BasePlatform] = None,
                       config: Optional[Mapping] = None) -> List[Device]:
    """Checks every address from start_ip to end_ip concurrently.

    Only an invalid range raises (InvalidRangeFormat); individual host
    failures drop that host. The result order is not the address order.
    """
    addresses = enumerate_range(start_ip, end_ip)
    resolver = resolver or get_default_resolver()
    platform = platform or get_platform()

    limit = int(_setting(config, "max_concurrency"))
    semaphore = asyncio.Semaphore(limit) if limit > 0 else None

    async def worker(ip: str) -> Optional[Device]:
        if semaphore is None:
            return await scan_host(ip, resolver, platform, config)
        async with semaphore:
            return await scan_host(ip, resolver, platform, config)

    logger.info(f"Scanning {len(addresses)} addresses from {start_ip} to {end_ip}")
    results = await asyncio.gather(*(worker(ip) for ip in addresses), return_exceptions=True)

    devices: List[Device] = []
    for ip, result in zip(addresses, results):
        if isinstance(result, BaseException):
            logger.warning(f"Scan of {ip} failed: {result!r}")
        elif result is not None:
            devices.append(result)

    logger.info(f"Scan complete: {len(devices)} of {len(addresses)} addresses answered")
    return devices

def sort_devices(devices: List[Device]) -> List[Device]:
    """Sorts device records by numeric address."""
    return sorted(devices, key=lambda d: ipaddress.IPv4Address(d.ip))

def run_scan(start_ip: str, end_ip: str, **kwargs) -> List[Device]:
    """Blocking wrapper around scan_network, sorted by address."""
    return sort_devices(asyncio.run(scan_network(start_ip, end_ip, **kwargs)))
