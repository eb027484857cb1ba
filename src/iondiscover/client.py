"""
A module containing a simple listener for publisher announcements.
"""
import logging
import select
import socket as socket_module
import time
from socket import socket, AF_INET, SOCK_DGRAM, SOL_SOCKET, SO_REUSEADDR
from typing import Iterable, Optional, Set

from .announcement import Announcement, BROADCAST_PORT, MAXIMUM_MESSAGE_SIZE

IP_ADDRESS_ANY = "0.0.0.0"

logger = logging.getLogger(__name__)


def configure_reusable_socket() -> socket:
    """
    Sets up a socket for listening, with a reusable address so several listeners can share the port.

    :return: A socket.
    """
    # IPv4 UDP socket
    s = socket(AF_INET, SOCK_DGRAM)
    s.setsockopt(SOL_SOCKET, SO_REUSEADDR, 1)
    # Not available on Windows, where SO_REUSEADDR alone allows sharing the port.
    if hasattr(socket_module, "SO_REUSEPORT"):
        s.setsockopt(SOL_SOCKET, socket_module.SO_REUSEPORT, 1)
    return s


class DiscoveryClient:
    """
    Listens for announcements on a UDP port.

    :param address: Local address to listen on. Defaults to all addresses.
    :param port: Port to listen on. Defaults to :data:`BROADCAST_PORT`; use ``0`` to pick a free port.
    """

    def __init__(self, address: Optional[str] = None, port: Optional[int] = None):
        if address is None:
            address = IP_ADDRESS_ANY
        if port is None:
            port = BROADCAST_PORT
        self.address = address
        self._connect(port)

    @property
    def port(self) -> int:
        return self._socket.getsockname()[1]

    def _connect(self, port):
        self._socket = configure_reusable_socket()
        try:
            self._socket.bind((self.address, port))
        except OSError:
            self._socket.close()
            raise

    def _check_for_messages(self, timeout):
        socket_list = [self._socket]
        readable, _, exceptional = select.select(socket_list, [], socket_list, timeout)
        if len(exceptional) > 0:
            raise ConnectionError("Exception on socket while checking for messages.")
        return len(readable) > 0

    def _receive_announcement(self) -> Optional[Announcement]:
        message, address = self._socket.recvfrom(MAXIMUM_MESSAGE_SIZE)
        try:
            return Announcement.from_message(message)
        except (ValueError, UnicodeDecodeError) as e:
            logger.debug(f"Ignoring invalid announcement from {address}: {e}")
            return None

    def search_for_announcements(
        self,
        search_time: float = 5.0,
        interval: float = 0.033,
        namespace: Optional[str] = None,
    ) -> Iterable[Announcement]:
        """
        Searches for and yields announcements for the given search time.

        Each publisher is yielded once per search, for each address it announced itself from, however many times
        it was heard.

        :param search_time: Time, in seconds, to search for.
        :param interval: Interval in seconds to wait between checking for new announcements.
        :param namespace: If given, only announcements in this namespace are yielded.
        :return: The announcements discovered over the duration.
        """
        seen: Set[tuple] = set()
        deadline = time.monotonic() + search_time
        while time.monotonic() < deadline:
            time_before_recv = time.monotonic()
            time_remaining = max(0.0, deadline - time.monotonic())
            if self._check_for_messages(timeout=time_remaining):
                announcement = self._receive_announcement()
                if announcement is not None and (namespace is None or announcement.namespace == namespace):
                    key = (announcement.publisher_id, announcement.address, announcement.ip)
                    if key not in seen:
                        seen.add(key)
                        yield announcement
            time_spent_receiving = time.monotonic() - time_before_recv
            time_remaining = interval - time_spent_receiving
            if time_remaining > 0:
                time.sleep(time_remaining)

    def close(self):
        self._socket.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
