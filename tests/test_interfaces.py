import socket
from collections import namedtuple
from unittest import mock

import pytest

from iondiscover.interfaces import (
    Interface,
    compute_broadcast_address,
    get_interfaces,
    prepare_interfaces,
)

# Same fields as the records psutil.net_if_addrs() returns.
snicaddr = namedtuple("snicaddr", ["family", "address", "netmask", "broadcast", "ptp"])


def ipv4(address, netmask):
    return snicaddr(
        family=socket.AF_INET, address=address, netmask=netmask, broadcast=None, ptp=None
    )


def ipv6(address):
    return snicaddr(
        family=socket.AF_INET6, address=address, netmask="ffff:ffff:ffff:ffff::", broadcast=None, ptp=None
    )


@pytest.mark.parametrize(
    "address, netmask, expected_broadcast",
    [
        ("192.168.1.10", "255.255.255.0", "192.168.1.255"),
        ("10.0.0.5", "255.255.255.252", "10.0.0.7"),
        ("172.16.4.20", "255.255.0.0", "172.16.255.255"),
        ("127.0.0.1", "255.0.0.0", "127.255.255.255"),
        ("192.168.1.10", "255.255.255.255", "192.168.1.10"),
    ],
)
def test_compute_broadcast_address(address, netmask, expected_broadcast):
    assert compute_broadcast_address(address, netmask) == expected_broadcast


@pytest.mark.parametrize(
    "address, netmask",
    [
        ("192.168.1.x", "255.255.255.0"),
        ("192.168.1.10", "255.255.x"),
        ("192.168.1.10", "255.0.255.0"),
    ],
)
def test_compute_broadcast_address_invalid(address, netmask):
    with pytest.raises(ValueError):
        compute_broadcast_address(address, netmask)


def test_prepare_interfaces_empty_table():
    assert prepare_interfaces({}) == []


def test_prepare_interfaces_only_ipv6():
    table = {
        "lo": [ipv6("::1")],
        "eth0": [ipv6("fe80::1"), ipv6("2001:db8::123")],
    }
    assert prepare_interfaces(table) == []


def test_prepare_interfaces_ignores_other_families():
    link_layer = snicaddr(
        family=getattr(socket, "AF_PACKET", -1),
        address="00:11:22:33:44:55",
        netmask=None,
        broadcast="ff:ff:ff:ff:ff:ff",
        ptp=None,
    )
    table = {"eth0": [link_layer, ipv4("192.168.1.10", "255.255.255.0")]}
    assert prepare_interfaces(table) == [Interface("192.168.1.10", "192.168.1.255")]


def test_prepare_interfaces_skips_missing_netmask():
    table = {"tun0": [ipv4("10.8.0.2", None)], "eth0": [ipv4("10.0.0.5", "255.255.255.252")]}
    assert prepare_interfaces(table) == [Interface("10.0.0.5", "10.0.0.7")]


def test_prepare_interfaces_deduplicates_broadcast():
    table = {
        "eth0": [ipv4("192.168.1.10", "255.255.255.0")],
        "eth0:1": [ipv4("192.168.1.11", "255.255.255.0")],
    }
    interfaces = prepare_interfaces(table)
    assert interfaces == [Interface("192.168.1.10", "192.168.1.255")]


def test_prepare_interfaces_keeps_enumeration_order():
    table = {
        "lo": [ipv4("127.0.0.1", "255.0.0.0"), ipv6("::1")],
        "eth0": [ipv6("fe80::1"), ipv4("192.168.1.10", "255.255.255.0")],
        "eth1": [ipv4("10.0.0.5", "255.255.255.252"), ipv4("10.0.0.6", "255.255.255.252")],
    }
    assert prepare_interfaces(table) == [
        Interface("127.0.0.1", "127.255.255.255"),
        Interface("192.168.1.10", "192.168.1.255"),
        Interface("10.0.0.5", "10.0.0.7"),
    ]


def test_interface_is_immutable():
    interface = Interface("192.168.1.10", "192.168.1.255")
    with pytest.raises(AttributeError):
        interface.address = "192.168.1.11"


def test_get_interfaces_uses_psutil():
    table = {"eth0": [ipv4("192.168.1.10", "255.255.255.0"), ipv6("fe80::1")]}
    with mock.patch("psutil.net_if_addrs", return_value=table) as net_if_addrs:
        interfaces = get_interfaces()
    net_if_addrs.assert_called_once()
    assert interfaces == [Interface("192.168.1.10", "192.168.1.255")]


def test_get_interfaces_real_host():
    """
    The real interface table resolves to distinct broadcast addresses. There may be none on the CI.
    """
    interfaces = get_interfaces()
    broadcasts = [interface.broadcast for interface in interfaces]
    assert len(set(broadcasts)) == len(broadcasts)
    for interface in interfaces:
        socket.inet_aton(interface.address)
        socket.inet_aton(interface.broadcast)
