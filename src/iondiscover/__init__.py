"""
Module providing connectionless service announcement over UDP.

A :class:`Publisher` broadcasts a message over every local IPv4 broadcast domain at a fixed interval, so that
processes on the same network segments can discover it without a central registry. Messages are sent to UDP port
41234 and consist of the ASCII prefix ``ION_DP`` followed by a JSON payload, encoded with UTF-8.

An example message is:

.. code

    ION_DP{"t": 1700000000000, "id": "482913", "nspace": "devapp", "name": "myapp@8100",
           "host": "laptop", "ip": "192.168.1.15", "port": 8100, "commPort": 8101, "path": "/"}

The :class:`DiscoveryClient` class can be used to listen for these announcements.

"""
from .announcement import Announcement, BROADCAST_PORT, MESSAGE_PREFIX
from .client import DiscoveryClient
from .interfaces import Interface, compute_broadcast_address, get_interfaces, prepare_interfaces
from .publisher import (
    ANNOUNCE_INTERVAL,
    Publisher,
    PublisherNotStartedError,
    new_silent_publisher,
)

__version__ = "1.0.0"
