"""
Command line interfaces for announcing a service and listing announced services.

Run with:

.. code:: bash

    iondiscover-publish devapp myapp 8100
    iondiscover-list --namespace devapp

"""
import argparse
import logging
import textwrap
import threading
from contextlib import contextmanager
from signal import signal, SIGINT
from typing import Optional, Sequence

from .announcement import BROADCAST_PORT
from .client import DiscoveryClient
from .publisher import Publisher


@contextmanager
def suppress_keyboard_interrupt_as_cancellation():
    """
    Context manager that suppresses KeyboardInterrupt and instead yields a cancellation token that can be waited on to
    check if a keyboard interrupt has occurred during the lifetime of the context.
    """
    token = CancellationToken()

    prev_handler = signal(SIGINT, lambda _, __: token.cancel())
    try:
        yield token
    finally:
        signal(SIGINT, prev_handler)


class CancellationToken:
    """
    Flag set once, when the user asks to stop, that other code can wait on.
    """

    def __init__(self):
        self._cancelled = threading.Event()

    def cancel(self):
        """
        Cancel this token.
        """
        self._cancelled.set()

    def wait_cancellation(self, timeout: Optional[float] = None) -> bool:
        """
        Block until this token is cancelled.

        :param timeout: Maximum number of seconds to wait, or ``None`` to wait indefinitely.
        :return: Whether the token was cancelled.
        """
        return self._cancelled.wait(timeout)


def _add_verbosity_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("-v", "--verbose", action="store_true", default=False)
    parser.add_argument("-vv", "--debug", action="store_true", default=False)


def _configure_logging(arguments: argparse.Namespace):
    logger = logging.getLogger("iondiscover")
    if arguments.verbose:
        logger.setLevel(logging.INFO)
    if arguments.debug:
        logger.setLevel(logging.DEBUG)
    if arguments.verbose or arguments.debug:
        logger.addHandler(logging.StreamHandler())


def handle_publish_arguments(args: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parse the arguments of the publishing command line.

    :return: The namespace of arguments read from the command line.
    """
    description = textwrap.dedent(
        """\
    Announce a service on every local IPv4 broadcast domain until interrupted.
    """
    )
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("namespace", help="Family of services the announced service belongs to.")
    parser.add_argument("name", help='Name of the announced service. Must not contain ":".')
    parser.add_argument("port", type=int, help="Port the announced service can be reached on.")
    parser.add_argument(
        "--comm-port", type=int, default=None, help="Optional secondary port of the service."
    )
    parser.add_argument(
        "--broadcast-port",
        type=int,
        default=BROADCAST_PORT,
        help="UDP port announcements are broadcast to.",
    )
    _add_verbosity_arguments(parser)
    return parser.parse_args(args)


def handle_list_arguments(args: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parse the arguments of the listing command line.

    :return: The namespace of arguments read from the command line.
    """
    description = textwrap.dedent(
        """\
    List the services announcing themselves on the local network.
    """
    )
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument(
        "--namespace", default=None, help="Only list services in this namespace."
    )
    parser.add_argument(
        "--search-time",
        type=float,
        default=5.0,
        help="Time, in seconds, to listen for announcements.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=BROADCAST_PORT,
        help="UDP port to listen for announcements on.",
    )
    _add_verbosity_arguments(parser)
    return parser.parse_args(args)


def publish_main(args: Optional[Sequence[str]] = None):
    """
    Entry point for the publishing command line.
    """
    arguments = handle_publish_arguments(args)
    _configure_logging(arguments)

    try:
        publisher = Publisher(
            arguments.namespace,
            arguments.name,
            arguments.port,
            arguments.comm_port,
            broadcast_port=arguments.broadcast_port,
        )
    except ValueError as e:
        raise SystemExit(str(e))

    publisher.add_error_callback(lambda error: print(f"Error while announcing: {error}"))

    with publisher, suppress_keyboard_interrupt_as_cancellation() as cancellation:
        publisher.start()
        print(
            f'Announcing "{publisher.namespace}:{publisher.name}" ({publisher.id}) '
            f"on port {publisher.broadcast_port}, from:"
        )
        for interface in publisher.interfaces:
            print(f"  - {interface.address} (broadcast {interface.broadcast})")
        cancellation.wait_cancellation()
        print("Closing due to keyboard interrupt")


def list_main(args: Optional[Sequence[str]] = None):
    """
    Entry point for the listing command line.
    """
    arguments = handle_list_arguments(args)
    _configure_logging(arguments)

    with DiscoveryClient(port=arguments.port) as client:
        found = 0
        for announcement in client.search_for_announcements(
            search_time=arguments.search_time, namespace=arguments.namespace
        ):
            found += 1
            comm_port = f", comm port {announcement.comm_port}" if announcement.comm_port is not None else ""
            print(
                f"{announcement.address} ({announcement.publisher_id}) on {announcement.host}: "
                f"{announcement.ip}:{announcement.port}{comm_port}"
            )
    if found == 0:
        print("No services found.")


if __name__ == "__main__":
    publish_main()
