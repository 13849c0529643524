# platforms/__init__.py
import platform as _platform
from typing import Optional

from .base import BasePlatform
from .linux import LinuxPlatform
from .macos import MacOSPlatform
from .windows import WindowsPlatform  # Import all concrete implementations


def get_platform(system: Optional[str] = None) -> BasePlatform:
    """Platform factory: returns the probing implementation for this OS."""

    system = (system or _platform.system()).lower()

    if system == "linux":
        return LinuxPlatform()
    elif system == "darwin":
        return MacOSPlatform()
    elif system == "windows":
        return WindowsPlatform()
    else:
        raise ValueError(f"Unsupported platform: {system}")
