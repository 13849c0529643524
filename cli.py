# cli.py
import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import List, Optional

from dynaconf import Dynaconf

from adoption import adopt_devices
from data import load_devices, save_devices
from device import Device, DeviceStatus
from errors import InvalidRangeFormat
from interfaces import get_default_network
from network_scanner import run_scan
from utils import is_valid_ipv4
from vendors import get_default_resolver

# Load settings
config = Dynaconf(
    envvar_prefix="NETADOPT",
    settings_files=['config/settings.toml', 'config/.secrets.toml'],
)

logger = logging.getLogger(__name__)

def get_credentials(alt: bool = False):
    """Returns the default or alternative (username, password) pair."""
    prefix = "alt_ssh" if alt else "ssh"
    return config.general.get(f"{prefix}_username", ""), config.general.get(f"{prefix}_password", "")

def print_devices(devices: List[Device]):
    print(f"{'IP':<16} {'MAC':<18} {'SSH':<4} {'STATUS':<12} VENDOR")
    for device in devices:
        ssh = "yes" if device.ssh_open else "no"
        print(f"{device.ip:<16} {device.mac:<18} {ssh:<4} {device.status.value:<12} {device.vendor}")

def log_progress(device: Device, batch: str):
    for line in batch.splitlines():
        if line.strip():
            logger.info(f"[{device.ip}] {line}")

def cmd_scan(args) -> int:
    start_ip, end_ip = args.start, args.end
    if not (start_ip and end_ip):
        network = get_default_network()
        if network is None:
            logger.error("No local IPv4 network found; pass START and END explicitly")
            return 1
        start_ip, end_ip = network.start_ip, network.end_ip
        logger.info(f"Using network {network}")

    resolver = get_default_resolver(Path(config.general.get("oui_file", "oui-database.txt")))
    try:
        devices = run_scan(start_ip, end_ip, resolver=resolver, config=config.get("scan", {}))
    except InvalidRangeFormat as e:
        logger.error(f"Invalid range: {e}")
        return 2

    if args.select_ssh:
        for device in devices:
            device.selected = device.ssh_open

    print_devices(devices)
    if args.output:
        save_devices(devices, Path(args.output))
        logger.info(f"Saved {len(devices)} devices to {args.output}")
    return 0

def _run_adoption(devices: List[Device], alt: bool) -> List[Device]:
    username, password = get_credentials(alt)
    if not username:
        logger.warning("No SSH username configured for this credential set")
    on_progress = log_progress if len(devices) > 1 else None
    return asyncio.run(adopt_devices(
        devices, username, password, config.general.controller_url,
        config=config.get("adoption", {}), on_progress=on_progress,
        progress_config=config.get("progress", {}),
    ))

def _report(devices: List[Device]) -> int:
    failed = [d for d in devices if d.status == DeviceStatus.ERROR]
    for device in failed:
        logger.error(f"{device.ip}: adoption failed\n{device.transcript}")
    logger.info(f"{len(devices) - len(failed)} of {len(devices)} devices adopted")
    return 1 if failed else 0

def cmd_adopt(args) -> int:
    invalid = [ip for ip in args.ips if not is_valid_ipv4(ip)]
    if invalid:
        logger.error(f"Invalid IP address: {', '.join(invalid)}")
        return 2

    devices = [Device(ip=ip, mac="Unknown", vendor="Unknown", ssh_open=True, selected=True)
               for ip in args.ips]
    return _report(_run_adoption(devices, args.alt))

def cmd_adopt_selected(args) -> int:
    json_file = Path(args.input or config.general.get("json_file", "devices.json"))
    devices = load_devices(json_file)
    if not any(d.selected for d in devices):
        logger.warning(f"No selected devices in {json_file}")
        return 0

    adopted = _run_adoption(devices, args.alt)
    save_devices(devices, json_file)
    return _report(adopted)

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Network device discovery and set-inform adoption")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan = subparsers.add_parser("scan", help="Discover devices in an IP range")
    scan.add_argument("start", nargs="?", help="First address (defaults to the local network)")
    scan.add_argument("end", nargs="?", help="Last address")
    scan.add_argument("--output", help="Save the device records to this JSON file")
    scan.add_argument("--select-ssh", action="store_true",
                      help="Mark every device with SSH open as selected")
    scan.set_defaults(func=cmd_scan)

    adopt = subparsers.add_parser("adopt", help="Adopt one or more devices by address")
    adopt.add_argument("ips", nargs="+", help="Device addresses")
    adopt.add_argument("--alt", action="store_true", help="Use the alternative credentials")
    adopt.set_defaults(func=cmd_adopt)

    selected = subparsers.add_parser("adopt-selected", help="Adopt the selected devices of a saved scan")
    selected.add_argument("--input", help="Device JSON file (defaults to general.json_file)")
    selected.add_argument("--alt", action="store_true", help="Use the alternative credentials")
    selected.set_defaults(func=cmd_adopt_selected)
    return parser

def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.debug:
        logging.basicConfig(level=logging.DEBUG, format='%(asctime)s - %(levelname)s - %(message)s')
    else:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

    return args.func(args)

if __name__ == "__main__":
    sys.exit(main())
