from fastapi import APIRouter, Depends, HTTPException
from redis.exceptions import RedisError
from schemas.live_sessions import LiveSessionRequest, LiveSessionResponse, LiveSessionListResponse
from backend import RedisBackend, get_redis_backend
from logging_config import get_logger

logger = get_logger(__name__)

live_sessions_router = APIRouter(prefix="/api/live-sessions", tags=["live-sessions"])


def _require_userurl(request: LiveSessionRequest) -> str:
    userurl = (request.userurl or "").strip()
    if not userurl:
        raise HTTPException(status_code=400, detail="userurl is required")
    return userurl


@live_sessions_router.post("/", status_code=201, response_model=LiveSessionResponse)
async def create_live_session(request: LiveSessionRequest, backend: RedisBackend = Depends(get_redis_backend)):
    userurl = _require_userurl(request)
    try:
        session = backend.create_session(userurl)
    except RedisError as e:
        logger.error(f"Error creating live session: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error creating live session")
    return LiveSessionResponse(message="Live session created successfully", data=session)


@live_sessions_router.get("/", response_model=LiveSessionListResponse)
async def get_all_live_sessions(backend: RedisBackend = Depends(get_redis_backend)):
    try:
        sessions = backend.list_sessions()
    except RedisError as e:
        logger.error(f"Error fetching live sessions: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching live sessions")
    return LiveSessionListResponse(count=len(sessions), data=sessions)


@live_sessions_router.get("/{session_id}", response_model=LiveSessionResponse)
async def get_live_session(session_id: int, backend: RedisBackend = Depends(get_redis_backend)):
    try:
        session = backend.get_session(session_id)
    except RedisError as e:
        logger.error(f"Error fetching live session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching live session")
    if session is None:
        raise HTTPException(status_code=404, detail="Live session not found")
    return LiveSessionResponse(data=session)


@live_sessions_router.put("/{session_id}", response_model=LiveSessionResponse)
async def update_live_session(session_id: int, request: LiveSessionRequest, backend: RedisBackend = Depends(get_redis_backend)):
    userurl = _require_userurl(request)
    try:
        session = backend.update_session(session_id, userurl)
    except RedisError as e:
        logger.error(f"Error updating live session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error updating live session")
    if session is None:
        raise HTTPException(status_code=404, detail="Live session not found")
    return LiveSessionResponse(message="Live session updated successfully", data=session)


@live_sessions_router.delete("/{session_id}", response_model=LiveSessionResponse)
async def delete_live_session(session_id: int, backend: RedisBackend = Depends(get_redis_backend)):
    try:
        session = backend.delete_session(session_id)
    except RedisError as e:
        logger.error(f"Error deleting live session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error deleting live session")
    if session is None:
        raise HTTPException(status_code=404, detail="Live session not found")
    return LiveSessionResponse(message="Live session deleted successfully", data=session)
