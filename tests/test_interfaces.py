"""Tests for local network detection."""

import socket
from types import SimpleNamespace
from unittest.mock import patch

from interfaces import NetworkInterface, calculate_network_range, get_default_network, get_local_networks


def addr(address, netmask, family=socket.AF_INET):
    return SimpleNamespace(family=family, address=address, netmask=netmask)


class TestNetworkRange:
    def test_slash_24(self):
        assert calculate_network_range("192.168.1.42", "255.255.255.0") == (
            "192.168.1.1", "192.168.1.254", "192.168.1.0/24")

    def test_slash_16(self):
        assert calculate_network_range("10.20.30.40", "255.255.0.0") == (
            "10.20.0.1", "10.20.255.254", "10.20.0.0/16")


class TestLocalNetworks:
    def test_skips_loopback_and_ipv6(self):
        fake = {
            "lo": [addr("127.0.0.1", "255.0.0.0")],
            "eth0": [addr("192.168.1.42", "255.255.255.0"), addr("fe80::1", None, socket.AF_INET6)],
        }
        with patch("interfaces.psutil.net_if_addrs", return_value=fake):
            networks = get_local_networks()
        assert networks == [NetworkInterface("eth0", "192.168.1.42", "192.168.1.1",
                                             "192.168.1.254", "192.168.1.0/24")]

    def test_default_prefers_home_ranges(self):
        networks = [
            NetworkInterface("docker0", "172.17.0.1", "172.17.0.1", "172.17.255.254", "172.17.0.0/16"),
            NetworkInterface("vpn0", "10.8.0.2", "10.8.0.1", "10.8.0.254", "10.8.0.0/24"),
            NetworkInterface("wlan0", "192.168.0.12", "192.168.0.1", "192.168.0.254", "192.168.0.0/24"),
        ]
        assert get_default_network(networks).name == "wlan0"
        assert get_default_network(networks[:2]).name == "vpn0"
        assert get_default_network(networks[:1]).name == "docker0"

    def test_default_falls_back_to_first(self):
        networks = [
            NetworkInterface("eth0", "100.64.0.5", "100.64.0.1", "100.64.0.254", "100.64.0.0/24"),
            NetworkInterface("eth1", "172.32.0.5", "172.32.0.1", "172.32.0.254", "172.32.0.0/24"),
        ]
        assert get_default_network(networks).name == "eth0"

    def test_no_networks(self):
        assert get_default_network([]) is None
