"""
Module providing a simple observer used as the publisher's error channel.
"""
import logging
from typing import Callable, List

logger = logging.getLogger(__name__)


class Event:
    """
    A list of callbacks that are all invoked, in subscription order, whenever the event is invoked.

    Invoking an event with no callbacks does nothing, so anything emitted while nobody is subscribed is dropped.
    A callback that raises is logged and skipped, so one misbehaving subscriber cannot prevent the others from
    being notified, nor break the thread that emitted the event.
    """

    def __init__(self):
        self._callbacks: List[Callable[..., None]] = []

    def add_callback(self, callback: Callable[..., None]):
        """
        Add a callback to this event, which will be invoked every time this event is invoked.

        :param callback: The callback to be called when this event is triggered.
        """
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[..., None]):
        """
        Remove a callback from this event.

        :param callback: The callback to be removed from this event's callbacks.
        :raises ValueError: If the callback was never added.
        """
        self._callbacks.remove(callback)

    def invoke(self, *args, **kwargs):
        # Iterate over a copy so callbacks may unsubscribe themselves.
        for callback in list(self._callbacks):
            try:
                callback(*args, **kwargs)
            except Exception:
                logger.exception(f"Event callback {callback!r} raised an exception.")

    def __call__(self, *args, **kwargs):
        self.invoke(*args, **kwargs)
