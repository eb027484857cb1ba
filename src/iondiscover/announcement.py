"""
Module defining the announcement message broadcast by a publisher.

On the wire, an announcement is the ASCII prefix ``ION_DP`` immediately followed by a JSON object, encoded with
UTF-8 and sent as a single UDP datagram. An example payload is:

.. code

    ION_DP{"t": 1700000000000, "id": "482913", "nspace": "devapp", "name": "myapp@8100",
           "host": "laptop", "ip": "192.168.1.15", "port": 8100, "path": "/"}

"""
import json
from typing import Optional, Union

MESSAGE_PREFIX = "ION_DP"
BROADCAST_PORT = 41234
MAXIMUM_MESSAGE_SIZE = 1024
DEFAULT_PATH = "/"

TIMESTAMP_KEY = "t"
ID_KEY = "id"
NAMESPACE_KEY = "nspace"
NAME_KEY = "name"
HOST_KEY = "host"
IP_KEY = "ip"
PORT_KEY = "port"
COMM_PORT_KEY = "commPort"
PATH_KEY = "path"

REQUIRED_KEYS = (TIMESTAMP_KEY, ID_KEY, NAMESPACE_KEY, NAME_KEY, HOST_KEY, IP_KEY, PORT_KEY)


class Announcement:
    """
    A single announcement of a publisher's presence, as sent from one local interface.

    Announcements are built fresh for every interface on every tick and never stored by the publisher.
    """

    def __init__(
        self,
        *,
        timestamp: int,
        publisher_id: str,
        namespace: str,
        name: str,
        host: str,
        ip: str,
        port: int,
        comm_port: Optional[int] = None,
        path: str = DEFAULT_PATH,
    ):
        self.timestamp = timestamp
        self.publisher_id = publisher_id
        self.namespace = namespace
        self.name = name
        self.host = host
        self.ip = ip
        self.port = port
        self.comm_port = comm_port
        self.path = path

    def to_dict(self) -> dict:
        """
        Returns the JSON object of this announcement, keyed as on the wire. The ``commPort`` key is only present
        when the publisher has a communication port.
        """
        payload = {
            TIMESTAMP_KEY: self.timestamp,
            ID_KEY: self.publisher_id,
            NAMESPACE_KEY: self.namespace,
            NAME_KEY: self.name,
            HOST_KEY: self.host,
            IP_KEY: self.ip,
            PORT_KEY: self.port,
        }
        if self.comm_port is not None:
            payload[COMM_PORT_KEY] = self.comm_port
        payload[PATH_KEY] = self.path
        return payload

    def to_message(self) -> str:
        """
        Returns the prefixed message that is broadcast for this announcement.
        """
        return MESSAGE_PREFIX + json.dumps(self.to_dict())

    @classmethod
    def from_message(cls, message: Union[str, bytes]) -> "Announcement":
        """
        Parses a received message back into an announcement.

        :param message: The datagram payload, either raw bytes or decoded text.
        :return: The announcement the message describes.
        :raises ValueError: If the message lacks the prefix, is not valid JSON, or misses a required field.
        """
        if isinstance(message, bytes):
            message = message.decode("utf-8")
        if not message.startswith(MESSAGE_PREFIX):
            raise ValueError(f"Message does not start with the {MESSAGE_PREFIX} prefix.")
        try:
            payload = json.loads(message[len(MESSAGE_PREFIX):])
        except json.JSONDecodeError as e:
            raise ValueError(f"Message payload is not valid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise ValueError("Message payload is not a JSON object.")
        for key in REQUIRED_KEYS:
            if key not in payload:
                raise ValueError(f"Announcement does not contain the required field: {key}")
        return cls(
            timestamp=payload[TIMESTAMP_KEY],
            publisher_id=payload[ID_KEY],
            namespace=payload[NAMESPACE_KEY],
            name=payload[NAME_KEY],
            host=payload[HOST_KEY],
            ip=payload[IP_KEY],
            port=payload[PORT_KEY],
            comm_port=payload.get(COMM_PORT_KEY),
            path=payload.get(PATH_KEY, DEFAULT_PATH),
        )

    @property
    def address(self) -> str:
        """
        The ``namespace:name`` address consumers use to identify this publisher.
        """
        return f"{self.namespace}:{self.name}"

    def __repr__(self):
        return f"{self.address}@{self.ip}:{self.port}"

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self):
        return hash((self.publisher_id, self.namespace, self.name, self.ip, self.port))
