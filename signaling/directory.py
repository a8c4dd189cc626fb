from typing import Dict, List, Optional

from logging_config import get_logger

logger = get_logger(__name__)


class RoomDirectory:
    """Room id -> member connection ids.

    Members are kept in join order so snapshots list earlier joiners first.
    Callers serialize access per room; nothing here awaits.
    """

    def __init__(self):
        # Format: {room_id: {connection_id: None}}
        self._rooms: Dict[str, Dict[str, None]] = {}

    def join(self, room_id: str, connection_id: str) -> List[str]:
        members = self._rooms.setdefault(room_id, {})
        existing = [member for member in members if member != connection_id]
        members[connection_id] = None
        logger.debug(f"Connection {connection_id} joined room {room_id} (members: {len(members)})")
        return existing

    def leave(self, room_id: str, connection_id: str) -> bool:
        members = self._rooms.get(room_id)
        if not members or connection_id not in members:
            return False
        del members[connection_id]
        if not members:
            del self._rooms[room_id]
            logger.debug(f"Room {room_id} is empty, evicted")
        else:
            logger.debug(f"Connection {connection_id} left room {room_id} (members: {len(members)})")
        return True

    def members_of(self, room_id: str, exclude: Optional[str] = None) -> List[str]:
        return [member for member in self._rooms.get(room_id, {}) if member != exclude]

    def exists(self, room_id: str) -> bool:
        return room_id in self._rooms

    def rooms(self) -> List[str]:
        return list(self._rooms)
