"""
Module providing the announcement publisher.

A :class:`Publisher` periodically broadcasts an :class:`~iondiscover.announcement.Announcement` on every local
IPv4 broadcast domain, so that listeners on the same network segments can find it without a central registry.
Sending is fire-and-forget: nothing is read back, and there is no message for going offline, so listeners infer
that a publisher has gone from the announcements stopping.

>>> publisher = Publisher("devapp", "myapp", 8100)
>>> publisher.add_error_callback(print)
>>> publisher.start()
>>> publisher.running
True
>>> publisher.stop()

"""
import logging
import random
import string
import threading
import time
from contextlib import suppress
from socket import socket, gethostname, AF_INET, SOCK_DGRAM, SOL_SOCKET, SO_BROADCAST
from typing import Callable, List, Optional

from .announcement import Announcement, BROADCAST_PORT, DEFAULT_PATH
from .event import Event
from .interfaces import Interface, get_interfaces
from .timing import RepeatingTimer

ANNOUNCE_INTERVAL = 2.0
IP_ADDRESS_ANY = "0.0.0.0"
NAME_SEPARATOR = ":"
ID_LENGTH = 6

ErrorCallback = Callable[[Exception], None]


class PublisherNotStartedError(RuntimeError):
    """
    Raised when announcing is attempted before the publisher has resolved its interfaces and opened its socket.
    """


def _connect_socket() -> socket:
    # IPv4 UDP socket on an ephemeral port, with broadcasting enabled.
    s = socket(AF_INET, SOCK_DGRAM)
    try:
        s.setsockopt(SOL_SOCKET, SO_BROADCAST, 1)
        s.bind((IP_ADDRESS_ANY, 0))
    except OSError:
        s.close()
        raise
    return s


def _generate_id() -> str:
    return "".join(random.choices(string.digits, k=ID_LENGTH))


class Publisher:
    """
    Announces a named service on all local IPv4 broadcast domains at a fixed interval.

    :param namespace: Family of services this one belongs to. Listeners use it to scope their search.
    :param name: Name of the service. Must not contain ``:``, which separates namespace and name for consumers.
    :param port: Port the announced service can be reached on. This is metadata for listeners, announcements are
        always sent to ``broadcast_port``.
    :param comm_port: Optional secondary port of the service, omitted from announcements when not given.
    :param interfaces: Broadcast domains to announce on. If not given, they are resolved from the host's network
        interfaces on the first :meth:`start` and cached.
    :param broadcast_port: UDP port announcements are sent to. Defaults to :data:`BROADCAST_PORT`.
    :param socket_factory: Callable returning a bound UDP socket with broadcasting enabled. Defaults to an
        ephemeral port on all addresses.
    :raises ValueError: If ``name`` contains ``:``.

    Errors that happen while announcing are not raised, as nobody is waiting on the background timer that sends
    announcements. Instead they are passed to callbacks registered with :meth:`add_error_callback`. Errors with no
    callback registered are dropped.

    :meth:`start` and :meth:`stop` can be called from any thread; transitions between the stopped and running states
    are serialised by a lock.
    """

    path: str = DEFAULT_PATH
    interval: float = ANNOUNCE_INTERVAL

    def __init__(
        self,
        namespace: str,
        name: str,
        port: int,
        comm_port: Optional[int] = None,
        *,
        interfaces: Optional[List[Interface]] = None,
        broadcast_port: Optional[int] = None,
        socket_factory: Optional[Callable[[], socket]] = None,
    ):
        if NAME_SEPARATOR in name:
            raise ValueError(f'name should not contain "{NAME_SEPARATOR}", got {name!r}.')
        if broadcast_port is None:
            broadcast_port = BROADCAST_PORT
        if socket_factory is None:
            socket_factory = _connect_socket

        self.logger = logging.getLogger(__name__)
        self.namespace = namespace
        self.name = name
        self.port = port
        self.comm_port = comm_port
        self.broadcast_port = broadcast_port

        self._id = _generate_id()
        self._interfaces = list(interfaces) if interfaces is not None else None
        self._socket_factory = socket_factory
        self._socket: Optional[socket] = None
        self._timer: Optional[RepeatingTimer] = None
        self._lock = threading.RLock()
        self._on_error = Event()

    @property
    def id(self) -> str:
        """
        Random identifier of this publisher, fixed for its lifetime.
        """
        return self._id

    @property
    def running(self) -> bool:
        """
        Whether this publisher is currently announcing itself.
        """
        return self._socket is not None and self._timer is not None

    @property
    def interfaces(self) -> Optional[List[Interface]]:
        """
        The broadcast domains announced on, or ``None`` if they have not been resolved yet.
        """
        if self._interfaces is None:
            return None
        return list(self._interfaces)

    def add_error_callback(self, callback: ErrorCallback):
        """
        Subscribe to errors raised while announcing.

        :param callback: Called with the exception, from the thread the error happened on.
        """
        self._on_error.add_callback(callback)

    def remove_error_callback(self, callback: ErrorCallback):
        """
        Unsubscribe a callback previously added with :meth:`add_error_callback`.
        """
        self._on_error.remove_callback(callback)

    def start(self):
        """
        Start announcing this publisher. Does nothing if it is already running.

        Resolves the broadcast domains if they are not known yet, opens the socket, sends the first round of
        announcements straight away, so listeners do not have to wait a full interval, and then schedules the
        repeating announcement.

        :raises OSError: If the socket cannot be created or bound. The publisher stays stopped.
        :raises RuntimeError: If the announcement thread cannot be started. The publisher stays stopped.
        """
        with self._lock:
            if self.running:
                return

            if self._interfaces is None:
                self._interfaces = get_interfaces()

            sock = self._socket_factory()
            try:
                timer = RepeatingTimer(self.interval, lambda: self._tick(timer), name=f"Publisher-{self._id}")
            except BaseException:
                sock.close()
                raise
            self._socket = sock
            self._timer = timer

            self.logger.info(
                f"Publisher {self.namespace}:{self.name} ({self._id}) starting, announcing every "
                f"{self.interval}s to port {self.broadcast_port} on {len(self._interfaces)} broadcast domain(s)."
            )
            for interface in self._interfaces:
                self.logger.debug(f"  - {interface.address} -> {interface.broadcast}")
            self.say_hello()

            # An error callback may have stopped the publisher during the first round.
            if self._timer is not timer:
                return
            try:
                timer.start()
            except BaseException:
                self._release()
                raise

    def stop(self):
        """
        Stop announcing this publisher. Does nothing if it is already stopped.

        The timer and the socket are released, and the announcement thread has exited, before this returns, unless
        it is called from that thread. Datagrams already handed to the operating system are not waited for.
        """
        with self._lock:
            if not self.running:
                return
            timer = self._timer
            self._release()
            self.logger.info(f"Publisher {self.namespace}:{self.name} ({self._id}) stopped.")
        # Outside the lock, as a tick in progress may be waiting for it.
        timer.join()

    def _release(self):
        self._timer.cancel()
        self._timer = None

        self._socket.close()
        self._socket = None

    def build_message(self, ip: str) -> str:
        """
        Builds the announcement message to send from the local address ``ip``.

        :param ip: The local interface address the announcement is sent from, advertised to listeners as the address
            to reach this service at.
        :return: The prefixed message, ready to be encoded and sent.
        """
        announcement = Announcement(
            timestamp=int(time.time() * 1000),
            publisher_id=self._id,
            namespace=self.namespace,
            name=self.name,
            host=gethostname(),
            ip=ip,
            port=self.port,
            comm_port=self.comm_port,
            path=self.path,
        )
        return announcement.to_message()

    def say_hello(self):
        """
        Sends one announcement to each broadcast domain.

        A failure to send to one domain is reported to the error callbacks and does not prevent sending to the
        others.

        :raises PublisherNotStartedError: If the interfaces have not been resolved or the socket is not open.
        """
        if self._interfaces is None:
            raise PublisherNotStartedError("No network interfaces set, was the publisher started?")
        sock = self._socket
        if sock is None:
            raise PublisherNotStartedError("Socket not initialised, was the publisher started?")

        try:
            for interface in self._interfaces:
                # An error callback may have stopped the publisher part way through.
                if self._socket is not sock:
                    break
                message = self.build_message(interface.address)
                self.logger.debug(f"Broadcasting {message} to {interface.broadcast}")
                try:
                    sock.sendto(message.encode("utf-8"), (interface.broadcast, self.broadcast_port))
                except OSError as e:
                    self._on_error(e)
        except Exception as e:
            self._on_error(e)

    def _tick(self, timer: RepeatingTimer):
        with self._lock:
            # Ticks from a timer that has since been stopped or replaced are dropped.
            if self._timer is not timer:
                return
            self.say_hello()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()

    def __repr__(self):
        return f"Publisher({self.namespace}:{self.name}, id={self._id}, port={self.port})"


def _ignore_error(_error: Exception):
    pass


def new_silent_publisher(namespace: str, name: str, port: int) -> Publisher:
    """
    Creates and starts a publisher for best-effort discovery, which never reports errors.

    The name is suffixed with ``@port``, so that several instances of the same service on different ports can be
    told apart. Errors while announcing and a failure to start are both discarded; if starting fails the returned
    publisher is simply not running.

    :param namespace: Family of services this one belongs to.
    :param name: Name of the service, which must not contain ``:``.
    :param port: Port the announced service can be reached on.
    :return: The publisher, running unless it failed to start.
    :raises ValueError: If ``name`` contains ``:``.
    """
    publisher = Publisher(namespace, f"{name}@{port}", port)
    publisher.add_error_callback(_ignore_error)
    with suppress(Exception):
        publisher.start()
    return publisher
