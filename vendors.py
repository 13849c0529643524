# vendors.py
import logging
import threading
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional

from utils import UNKNOWN_MAC

logger = logging.getLogger(__name__)

DEFAULT_OUI_FILE = "oui-database.txt"

_TYPE_MARKERS = ("(base 16)", "(hex)")

BASELINE_VENDORS: Dict[str, str] = {
    # Ubiquiti
    "002722": "Ubiquiti Networks",
    "FCECDA": "Ubiquiti Inc",
    "B4FBE4": "Ubiquiti Inc",
    "74ACB9": "Ubiquiti Networks",
    "0418D6": "Ubiquiti Networks",
    "DC9FDB": "Ubiquiti Inc",
    "68D79A": "Ubiquiti Networks",
    "802AA8": "Ubiquiti Inc",
    "F09FC2": "Ubiquiti Networks",
    "18E829": "Ubiquiti Networks",
    "44D9E7": "Ubiquiti Networks",
    "687251": "Ubiquiti Networks",
    "24A43C": "Ubiquiti Networks",
    "E063DA": "Ubiquiti Inc",
    "78453C": "Ubiquiti Inc",
    "788A20": "Ubiquiti Inc",
    "D0217C": "Ubiquiti Inc",
    "A42BB0": "Ubiquiti Inc",
    # Network equipment
    "001B44": "D-Link",
    "001EC2": "D-Link",
    "002191": "D-Link",
    "000C42": "Linksys",
    "001310": "Linksys",
    "0015E9": "Linksys",
    "00145E": "TP-Link",
    "0C80DA": "TP-Link",
    "A07A0C": "TP-Link",
    "002686": "Cisco",
    "000D3A": "Cisco",
    "001644": "Cisco Linksys",
    "00055D": "NetGear",
    "001B2F": "NetGear",
    "0009B7": "NetGear",
    # Virtualization
    "005056": "VMware",
    "000C29": "VMware",
    "080027": "Oracle VirtualBox",
    "00155D": "Microsoft Hyper-V",
    # Common hosts
    "001CB3": "Apple",
    "00236C": "Apple",
    "3C0754": "Apple",
    "B827EB": "Raspberry Pi Foundation",
    "DCA632": "Raspberry Pi Foundation",
    "E45F01": "Raspberry Pi Trading",
    "001EC0": "Intel Corporate",
    "00215C": "Intel Corporate",
    "0026C7": "Intel Corporate",
}


def oui_prefix(mac: str) -> str:
    """Returns the 6-character uppercase prefix of a colon-separated MAC.

    Single-character octets (as printed by some ``arp`` implementations) are
    zero-padded, so ``aa:1:cc:dd:ee:ff`` gives ``AA01CC``.
    """
    octets = mac.split(":")[:3]
    return "".join(octet.upper().zfill(2) if len(octet) == 1 else octet.upper()
                   for octet in octets)


def parse_oui_lines(lines: Iterable[str]) -> Dict[str, str]:
    """Parses IEEE-style OUI lines into a prefix -> vendor mapping.

    Accepts the ``oui.txt`` layout, e.g.::

        00-27-22   (hex)		Ubiquiti Networks Inc.
        002722     (base 16)		Ubiquiti Networks Inc.

    Lines without a type marker, with too few tokens, or with an empty
    company name are ignored.
    """
    entries: Dict[str, str] = {}
    for line in lines:
        marker = next((m for m in _TYPE_MARKERS if m in line), None)
        if marker is None:
            continue
        parts = line.split()
        if len(parts) < 3:
            continue
        prefix = parts[0].replace("-", "").upper()
        company = line[line.index(marker) + len(marker):].strip()
        if company:
            entries[prefix] = company
    return entries


class VendorResolver:
    """Immutable prefix -> vendor table, safe to share between scan tasks."""

    def __init__(self, table: Mapping[str, str]):
        self._table = MappingProxyType(dict(table))

    @classmethod
    def from_sources(cls, override_file: Optional[Path] = None) -> "VendorResolver":
        """Builds the table from the baseline and an optional override file."""
        table = dict(BASELINE_VENDORS)
        if override_file is not None:
            table.update(load_override_file(Path(override_file)))
        logger.debug(f"Vendor table ready with {len(table)} entries")
        return cls(table)

    def __len__(self) -> int:
        return len(self._table)

    def resolve(self, mac: str) -> str:
        """Maps a hardware address to a manufacturer name."""
        if mac == UNKNOWN_MAC:
            return UNKNOWN_MAC

        vendor = self._table.get(oui_prefix(mac))
        if vendor is not None:
            return vendor
        return f"Unknown ({':'.join(mac.split(':')[:3])})"


def load_override_file(path: Path) -> Dict[str, str]:
    """Reads an override file; a missing or unreadable file yields no entries."""
    try:
        with path.open("r", encoding="utf-8", errors="replace") as file:
            entries = parse_oui_lines(file)
    except FileNotFoundError:
        logger.debug(f"No vendor override file at {path}")
        return {}
    except OSError as err:
        logger.warning(f"Could not read vendor override file {path}: {err}")
        return {}
    logger.info(f"Loaded {len(entries)} vendor entries from {path}")
    return entries


_default_resolver: Optional[VendorResolver] = None
_default_lock = threading.Lock()


def get_default_resolver(override_file: Optional[Path] = Path(DEFAULT_OUI_FILE)) -> VendorResolver:
    """Returns the process-wide resolver, building it on first use.

    The override file is only consulted by the first caller.
    """
    global _default_resolver
    if _default_resolver is None:
        with _default_lock:
            if _default_resolver is None:
                _default_resolver = VendorResolver.from_sources(override_file)
    return _default_resolver
