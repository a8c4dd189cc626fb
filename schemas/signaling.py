from pydantic import BaseModel, Field
from typing import Any, Dict, Optional

from signaling.registry import Role


class CreateRoomEvent(BaseModel):
    roomId: Optional[str] = None
    userType: Role


class JoinRoomEvent(BaseModel):
    email: str = Field(..., min_length=1)
    roomId: str = Field(..., min_length=1)
    userType: Optional[Role] = None


class SendSignalEvent(BaseModel):
    signal: Dict[str, Any]
    to: str = Field(..., min_length=1)
    # Informational only; the relay stamps the real sender id
    from_: Optional[str] = Field(default=None, alias="from")
    roomId: Optional[str] = None


class PeerConnectedEvent(BaseModel):
    socketId: str = Field(..., min_length=1)


class LeaveRoomEvent(BaseModel):
    roomId: str = Field(..., min_length=1)
