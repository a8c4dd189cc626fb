import asyncio
import random
import string
import time
import uuid
import weakref
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from constants import ROOM_ID_PREFIX
from logging_config import get_logger
from schemas.signaling import (
    CreateRoomEvent,
    JoinRoomEvent,
    LeaveRoomEvent,
    PeerConnectedEvent,
    SendSignalEvent,
)
from signaling.directory import RoomDirectory
from signaling.registry import Connection, ConnectionRegistry, LabelIndex
from signaling.router import SignalRouter

logger = get_logger(__name__)

BASE36 = string.digits + string.ascii_lowercase


def generate_room_id(prefix: str = ROOM_ID_PREFIX) -> str:
    suffix = ''.join(random.choices(BASE36, k=9))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


class SessionCoordinator:
    """Drives room membership and signaling for every live connection.

    All membership changes for a room, together with the snapshot and the
    notifications they produce, run under that room's lock. Delivery only
    enqueues onto a connection's outbox, so nothing awaits I/O while a lock
    is held.
    """

    def __init__(
        self,
        registry: Optional[ConnectionRegistry] = None,
        directory: Optional[RoomDirectory] = None,
        labels: Optional[LabelIndex] = None,
    ):
        self.registry = registry or ConnectionRegistry()
        self.directory = directory or RoomDirectory()
        self.labels = labels or LabelIndex()
        self.router = SignalRouter(self.registry)
        # Format: {room_id: lock}; an entry lives only while someone holds or waits on it
        self._room_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()
        self._handlers = {
            "create-room": (CreateRoomEvent, self.create_room),
            "join-room": (JoinRoomEvent, self.join_room),
            "send-signal": (SendSignalEvent, self.send_signal),
            "peer-connected": (PeerConnectedEvent, self.peer_connected),
            "leave-room": (LeaveRoomEvent, self.leave_room),
        }

    def _room_lock(self, room_id: str) -> asyncio.Lock:
        lock = self._room_locks.get(room_id)
        if lock is None:
            lock = asyncio.Lock()
            self._room_locks[room_id] = lock
        return lock

    def connect(self, connection_id: Optional[str] = None) -> Connection:
        connection_id = connection_id or str(uuid.uuid4())
        connection = self.registry.register(connection_id)
        connection.deliver("connected", {"socketId": connection_id})
        logger.info(f"Connection {connection_id} established")
        return connection

    async def handle(self, connection_id: str, event: Optional[str], data: Any):
        """Validate one inbound event and dispatch it. Malformed events are dropped."""
        if connection_id not in self.registry:
            logger.debug(f"Dropping {event} from closed connection {connection_id}")
            return
        handler = self._handlers.get(event)
        if handler is None:
            logger.warning(f"Dropping unknown event {event!r} from connection {connection_id}")
            return
        schema, callback = handler
        try:
            payload = schema.model_validate(data if data is not None else {})
        except ValidationError as e:
            logger.warning(f"Dropping malformed {event} from connection {connection_id}: {e.errors()}")
            return
        try:
            await callback(connection_id, payload)
        except Exception as e:
            logger.error(f"Error handling {event} from connection {connection_id}: {e}", exc_info=True)

    async def create_room(self, connection_id: str, event: CreateRoomEvent) -> Optional[str]:
        connection = self.registry.get(connection_id)
        if connection is None:
            return None

        if event.roomId:
            room_id = event.roomId
            rejoin = connection.room_id == room_id
            if not rejoin:
                await self._leave_current(connection)
            lock = self._room_lock(room_id)
            async with lock:
                existing = self._enter(connection, room_id, connection.label, event.userType)
                if not rejoin:
                    # Members waiting in a reused room must hear about the creator
                    joined = {"email": connection.label, "socketId": connection_id}
                    for member in existing:
                        self.router.forward("user-joined", joined, member)
        else:
            await self._leave_current(connection)
            while True:
                room_id = generate_room_id()
                lock = self._room_lock(room_id)
                async with lock:
                    if self.directory.exists(room_id):
                        logger.warning(f"Generated room id {room_id} already in use, regenerating")
                        continue
                    self._enter(connection, room_id, connection.label, event.userType)
                    break

        connection.deliver("room-created", {"roomId": room_id})
        logger.info(f"Connection {connection_id} created room {room_id} as {event.userType.value}")
        return room_id

    async def join_room(self, connection_id: str, event: JoinRoomEvent) -> Optional[List[str]]:
        connection = self.registry.get(connection_id)
        if connection is None:
            return None
        room_id = event.roomId
        rejoin = connection.room_id == room_id
        if not rejoin:
            await self._leave_current(connection)

        if connection.label and connection.label != event.email:
            self.labels.discard(connection.label, connection_id)
        self.labels.set(event.email, connection_id)
        lock = self._room_lock(room_id)
        async with lock:
            existing = self._enter(connection, room_id, event.email, event.userType or connection.role)
            existing_users = [self._describe(member) for member in existing]
            connection.deliver("joined-room", {"roomId": room_id, "existingUsers": existing_users})
            if not rejoin:
                joined = {"email": event.email, "socketId": connection_id}
                for member in existing:
                    self.router.forward("user-joined", joined, member)

        logger.info(
            f"User {event.email} ({connection_id}) joined room {room_id} "
            f"with {len(existing)} existing users"
        )
        return existing

    async def send_signal(self, connection_id: str, event: SendSignalEvent) -> bool:
        if event.from_ and event.from_ != connection_id:
            logger.debug(f"Signal from {connection_id} claimed sender {event.from_}, using real id")
        return self.router.relay(event.signal, event.to, connection_id)

    async def peer_connected(self, connection_id: str, event: PeerConnectedEvent) -> bool:
        return self.router.forward("peer-connected", {"socketId": connection_id}, event.socketId)

    async def leave_room(self, connection_id: str, event: LeaveRoomEvent) -> bool:
        connection = self.registry.get(connection_id)
        if connection is None or connection.room_id != event.roomId:
            logger.debug(f"Connection {connection_id} is not in room {event.roomId}, nothing to leave")
            return False
        return await self._leave_current(connection)

    async def disconnect(self, connection_id: str) -> bool:
        """Tear down a connection. Safe to call any number of times."""
        result = self.registry.unregister(connection_id)
        if result is None:
            return False
        room_id, label = result
        self.labels.discard(label, connection_id)
        left = False
        if room_id:
            left = await self._remove_member(room_id, connection_id, label)
        logger.info(f"Connection {connection_id} disconnected (last room: {room_id})")
        return left

    def room_snapshot(self, room_id: str) -> List[Connection]:
        """Live connections currently in a room, in join order."""
        members = (self.registry.get(member) for member in self.directory.members_of(room_id))
        return [connection for connection in members if connection is not None]

    def _enter(self, connection: Connection, room_id: str, label: Optional[str], role) -> List[str]:
        # Caller holds the room lock
        self.registry.attach_identity(connection.connection_id, label, role)
        self.registry.set_room(connection.connection_id, room_id)
        return self.directory.join(room_id, connection.connection_id)

    async def _leave_current(self, connection: Connection) -> bool:
        room_id = connection.room_id
        if not room_id:
            return False
        self.registry.set_room(connection.connection_id, None)
        self.labels.discard(connection.label, connection.connection_id)
        return await self._remove_member(room_id, connection.connection_id, connection.label)

    async def _remove_member(self, room_id: str, connection_id: str, label: Optional[str]) -> bool:
        lock = self._room_lock(room_id)
        async with lock:
            if not self.directory.leave(room_id, connection_id):
                return False
            left = {"socketId": connection_id, "email": label}
            for member in self.directory.members_of(room_id):
                self.router.forward("user-left", left, member)
        logger.info(f"Connection {connection_id} ({label}) left room {room_id}")
        return True

    def _describe(self, connection_id: str) -> Dict[str, Optional[str]]:
        connection = self.registry.get(connection_id)
        label = connection.label if connection else None
        return {"email": label, "socketId": connection_id}
