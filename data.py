# data.py
import json
import logging
from dataclasses import asdict
from typing import List
from pathlib import Path

from device import Device, DeviceStatus

logger = logging.getLogger(__name__)

def load_devices(json_file: Path) -> List[Device]:
    """Loads device records from the JSON file.

    Args:
        json_file (Path): Path to the JSON file.

    Returns:
        List[Device]: The stored records, or an empty list if the file is
        missing or unreadable.
    """
    try:
        with json_file.open("r", encoding="utf-8") as file:
            data = json.load(file)
    except FileNotFoundError as err:
        logger.warning("JSON file not found: %s. Returning empty list.", err)
        return []
    except json.JSONDecodeError as err:
        logger.warning("Error decoding JSON data: %s. Returning empty list.", err)
        return []

    devices = []
    for entry in data:
        try:
            entry["status"] = DeviceStatus(entry.get("status", DeviceStatus.PENDING.value))
            devices.append(Device(**entry))
        except (AttributeError, TypeError, ValueError) as err:
            logger.warning("Skipping malformed device entry %s: %s", entry, err)
    return devices

def save_devices(devices: List[Device], json_file: Path) -> None:
    """Saves device records to the JSON file.

    Args:
        devices (List[Device]): The records to save.
        json_file (Path): Path to the JSON file.
    """
    data = []
    for device in devices:
        entry = asdict(device)
        entry["status"] = device.status.value
        data.append(entry)
    try:
        json_file.parent.mkdir(parents=True, exist_ok=True)
        with json_file.open("w", encoding="utf-8") as file:
            json.dump(data, file, indent=4)
    except OSError as err:
        logger.error("File system error while saving JSON data: %s", err)
