from pydantic import BaseModel
from typing import Optional


class OnlineUser(BaseModel):
    socketId: str
    email: Optional[str] = None
    role: Optional[str] = None


class RoomSummary(BaseModel):
    room_id: str
    online_users_count: int


class RoomListResponse(BaseModel):
    count: int
    rooms: list[RoomSummary]


class RoomDetailsResponse(BaseModel):
    room_id: str
    online_users_count: int
    online_users: list[OnlineUser]
