import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from logging_config import get_logger

logger = get_logger(__name__)


class Role(str, Enum):
    TEACHER = "teacher"
    STUDENT = "student"


class ConnectionState(str, Enum):
    CONNECTED = "connected"
    IN_ROOM = "in_room"
    CLOSED = "closed"


@dataclass
class Connection:
    """One live transport session. Outbound messages are queued on `outbox`
    and drained to the socket by the transport in FIFO order."""

    connection_id: str
    label: Optional[str] = None
    role: Optional[Role] = None
    room_id: Optional[str] = None
    state: ConnectionState = ConnectionState.CONNECTED
    outbox: asyncio.Queue = field(default_factory=asyncio.Queue, repr=False)

    def deliver(self, event: str, payload: dict) -> bool:
        if self.state is ConnectionState.CLOSED:
            return False
        self.outbox.put_nowait({"event": event, "data": payload})
        return True

    def close(self):
        self.state = ConnectionState.CLOSED
        # Sentinel for the outbox consumer
        self.outbox.put_nowait(None)


class ConnectionRegistry:
    def __init__(self):
        # Format: {connection_id: Connection}
        self._connections: Dict[str, Connection] = {}

    def register(self, connection_id: str) -> Connection:
        existing = self._connections.get(connection_id)
        if existing is not None:
            logger.warning(f"Connection {connection_id} is already registered")
            return existing
        connection = Connection(connection_id=connection_id)
        self._connections[connection_id] = connection
        logger.debug(f"Registered connection {connection_id} (total: {len(self._connections)})")
        return connection

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def attach_identity(self, connection_id: str, label: Optional[str], role: Optional[Role]):
        connection = self._connections.get(connection_id)
        if connection is None:
            # Late event racing a disconnect
            logger.debug(f"Ignoring identity for unknown connection {connection_id}")
            return
        connection.label = label
        connection.role = role
        logger.debug(f"Connection {connection_id} identified as label={label} role={role}")

    def set_room(self, connection_id: str, room_id: Optional[str]):
        connection = self._connections.get(connection_id)
        if connection is None:
            logger.debug(f"Ignoring room update for unknown connection {connection_id}")
            return
        connection.room_id = room_id
        connection.state = ConnectionState.IN_ROOM if room_id else ConnectionState.CONNECTED

    def unregister(self, connection_id: str) -> Optional[Tuple[Optional[str], Optional[str]]]:
        """Remove a connection and return its last (room_id, label).

        Returns None when the connection is not registered, so repeated calls are harmless.
        """
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            logger.debug(f"Connection {connection_id} already unregistered")
            return None
        connection.close()
        logger.debug(f"Unregistered connection {connection_id} (total: {len(self._connections)})")
        return connection.room_id, connection.label

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)


class LabelIndex:
    """Advisory label -> connection id lookup. Last write wins."""

    def __init__(self):
        self._by_label: Dict[str, str] = {}

    def set(self, label: str, connection_id: str):
        previous = self._by_label.get(label)
        if previous and previous != connection_id:
            logger.info(f"Label {label} moved from connection {previous} to {connection_id}")
        self._by_label[label] = connection_id

    def get(self, label: str) -> Optional[str]:
        return self._by_label.get(label)

    def discard(self, label: Optional[str], connection_id: str):
        if label and self._by_label.get(label) == connection_id:
            del self._by_label[label]
