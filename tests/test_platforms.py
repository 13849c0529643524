"""Tests for the OS-specific liveness and neighbor-table lookups."""

import asyncio
from unittest.mock import patch

import pytest

from platforms import get_platform
from utils import format_mac
from platforms.linux import LinuxPlatform
from platforms.macos import MacOSPlatform
from platforms.windows import WindowsPlatform


class FakeProcess:
    def __init__(self, returncode=0, stdout=b""):
        self.returncode = returncode
        self.stdout = stdout

    async def wait(self):
        return self.returncode

    async def communicate(self):
        return self.stdout, b""

    def kill(self):
        pass


def fake_exec(process, calls=None):
    async def _exec(*args, **kwargs):
        if calls is not None:
            calls.append(args)
        return process
    return _exec


class TestFactory:
    @pytest.mark.parametrize("system,cls", [
        ("Linux", LinuxPlatform),
        ("Darwin", MacOSPlatform),
        ("Windows", WindowsPlatform),
    ])
    def test_selects_implementation(self, system, cls):
        assert isinstance(get_platform(system), cls)

    def test_unsupported(self):
        with pytest.raises(ValueError):
            get_platform("Plan9")


class TestPingArgs:
    def test_linux(self):
        assert LinuxPlatform().ping_args("10.0.0.1", 1.0) == ["ping", "-c", "1", "-W", "1", "10.0.0.1"]

    def test_macos_uses_milliseconds(self):
        assert MacOSPlatform().ping_args("10.0.0.1", 1.0) == ["ping", "-c", "1", "-W", "1000", "10.0.0.1"]

    def test_windows(self):
        assert WindowsPlatform().ping_args("10.0.0.1", 1.0) == ["ping", "-n", "1", "-w", "1000", "10.0.0.1"]


class TestNeighborParsing:
    def test_linux(self):
        output = (
            "192.168.1.10 dev eth0 lladdr 11:22:33:44:55:66 STALE\n"
            "192.168.1.1 dev eth0 lladdr fc:ec:da:01:02:03 REACHABLE\n"
            "192.168.1.7 dev eth0  FAILED\n"
        )
        platform = LinuxPlatform()
        assert platform.parse_neighbor_output(output, "192.168.1.1") == "FC:EC:DA:01:02:03"
        assert platform.parse_neighbor_output(output, "192.168.1.7") is None
        assert platform.parse_neighbor_output(output, "192.168.1.2") is None

    def test_macos(self):
        output = "? (192.168.1.1) at 0:27:22:a:b:c on en0 ifscope [ethernet]\n"
        assert MacOSPlatform().parse_neighbor_output(output, "192.168.1.1") == "0:27:22:A:B:C"

    def test_macos_incomplete(self):
        output = "? (192.168.1.9) at (incomplete) on en0 ifscope [ethernet]\n"
        assert MacOSPlatform().parse_neighbor_output(output, "192.168.1.9") is None

    def test_windows(self):
        output = (
            "\nInterface: 192.168.1.50 --- 0x7\n"
            "  Internet Address      Physical Address      Type\n"
            "  192.168.1.1           fc-ec-da-01-02-03     dynamic\n"
            "  192.168.1.255         ff-ff-ff-ff-ff-ff     static\n"
        )
        assert WindowsPlatform().parse_neighbor_output(output, "192.168.1.1") == "FC:EC:DA:01:02:03"
        assert WindowsPlatform().parse_neighbor_output(output, "192.168.1.2") is None

    @pytest.mark.parametrize("platform, output", [
        (LinuxPlatform(), "10.0.0.1 dev eth0 lladdr 00:27:22:aa:bb:cc REACHABLE\n"),
        (MacOSPlatform(), "? (10.0.0.1) at 00:27:22:aa:bb:cc on en0 ifscope [ethernet]\n"),
        (WindowsPlatform(), "  10.0.0.1           00-27-22-aa-bb-cc     dynamic\n"),
    ])
    def test_same_normalisation_everywhere(self, platform, output):
        assert platform.parse_neighbor_output(output, "10.0.0.1") == format_mac("00-27-22-aa-bb-cc")


class TestSubprocessChecks:
    def test_alive_on_zero_exit(self):
        calls = []
        with patch("platforms.base.asyncio.create_subprocess_exec", new=fake_exec(FakeProcess(0), calls)):
            assert asyncio.run(LinuxPlatform().is_alive("10.0.0.1", 1.0)) is True
        assert calls[0][0] == "ping"

    def test_not_alive_on_failure_exit(self):
        with patch("platforms.base.asyncio.create_subprocess_exec", new=fake_exec(FakeProcess(1))):
            assert asyncio.run(LinuxPlatform().is_alive("10.0.0.1", 1.0)) is False

    def test_missing_ping_binary(self):
        async def missing(*args, **kwargs):
            raise FileNotFoundError("ping")

        with patch("platforms.base.asyncio.create_subprocess_exec", new=missing):
            assert asyncio.run(LinuxPlatform().is_alive("10.0.0.1", 1.0)) is False

    def test_hardware_address(self):
        process = FakeProcess(0, b"10.0.0.1 dev eth0 lladdr 00:27:22:aa:bb:cc REACHABLE\n")
        with patch("platforms.base.asyncio.create_subprocess_exec", new=fake_exec(process)):
            assert asyncio.run(LinuxPlatform().hardware_address("10.0.0.1")) == "00:27:22:AA:BB:CC"
