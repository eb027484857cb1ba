"""
Module for resolving the IPv4 broadcast domains this host takes part in.

The operating system's interface table is flattened, filtered to IPv4 and reduced to one
:class:`Interface` per broadcast address, which is the set of targets an announcement is sent to.
"""
import ipaddress
import logging
import socket
from collections import namedtuple
from typing import Iterable, List, Mapping

import psutil

logger = logging.getLogger(__name__)

Interface = namedtuple("Interface", ["address", "broadcast"])
Interface.__doc__ = """
A local IPv4 address, paired with the broadcast address of the network it belongs to.
"""


def compute_broadcast_address(address: str, netmask: str) -> str:
    """
    Computes the broadcast address of the network containing the given address.

    :param address: An IPv4 address, e.g. ``192.168.1.10``.
    :param netmask: The IPv4 netmask of the network, e.g. ``255.255.255.0``.
    :return: The broadcast address of the network, e.g. ``192.168.1.255``.
    :raises ValueError: if the address or netmask are not valid IPv4 values.

    >>> compute_broadcast_address("192.168.1.10", "255.255.255.0")
    '192.168.1.255'
    >>> compute_broadcast_address("10.0.0.5", "255.255.255.252")
    '10.0.0.7'
    """
    network = ipaddress.IPv4Network(f"{address}/{netmask}", strict=False)
    return str(network.broadcast_address)


def prepare_interfaces(interface_table: Mapping[str, Iterable]) -> List[Interface]:
    """
    Reduces an interface table to the distinct broadcast domains it describes.

    :param interface_table: Mapping of interface name to the address records of that interface, in the format
        returned by :func:`psutil.net_if_addrs`. Each record must have ``family``, ``address`` and ``netmask``
        attributes.
    :return: One :class:`Interface` per distinct broadcast address, in the order the addresses were enumerated.
        When several addresses share a broadcast address, only the first is kept.
    """
    seen_broadcasts = set()
    interfaces = []
    for name, records in interface_table.items():
        for record in records:
            if record.family != socket.AF_INET:
                continue
            if record.netmask is None:
                logger.debug(f"Skipping {record.address} on {name}, it has no netmask.")
                continue
            broadcast = compute_broadcast_address(record.address, record.netmask)
            if broadcast in seen_broadcasts:
                continue
            seen_broadcasts.add(broadcast)
            interfaces.append(Interface(address=record.address, broadcast=broadcast))
    return interfaces


def get_interfaces() -> List[Interface]:
    """
    Gets the broadcast domains of all the IPv4 addresses currently available on this host.

    :return: A list of :class:`Interface`, possibly empty.
    """
    return prepare_interfaces(psutil.net_if_addrs())
