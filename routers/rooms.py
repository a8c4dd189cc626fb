from fastapi import APIRouter, HTTPException, Request
from schemas.rooms import OnlineUser, RoomDetailsResponse, RoomListResponse, RoomSummary
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


@rooms_router.get("/", response_model=RoomListResponse)
async def list_rooms(request: Request):
    """Rooms that currently have at least one connected member."""
    coordinator = request.app.state.coordinator
    rooms = [
        RoomSummary(room_id=room_id, online_users_count=len(coordinator.directory.members_of(room_id)))
        for room_id in coordinator.directory.rooms()
    ]
    return RoomListResponse(count=len(rooms), rooms=rooms)


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str, request: Request):
    """
    Get the live members of a room.

    Returns:
    - room_id: Room identifier
    - online_users_count: Number of connections currently joined
    - online_users: socketId, email and role of each member, in join order
    """
    client_host = request.client.host if request.client else 'unknown'
    logger.info(f"Room details request for {room_id} from {client_host}")

    coordinator = request.app.state.coordinator
    members = coordinator.room_snapshot(room_id)
    if not members:
        logger.debug(f"Room details failed: Room {room_id} has no members")
        raise HTTPException(status_code=404, detail="Room not found")

    online_users = [
        OnlineUser(
            socketId=member.connection_id,
            email=member.label,
            role=member.role.value if member.role else None,
        )
        for member in members
    ]
    return RoomDetailsResponse(room_id=room_id, online_users_count=len(online_users), online_users=online_users)
