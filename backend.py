import redis
from datetime import datetime
from functools import lru_cache
from typing import Optional
from constants import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD, REDIS_DB
from redis_keys import REDIS_SESSION_COUNTER_KEY, REDIS_SESSION_KEY, REDIS_SESSION_INDEX_KEY
from logging_config import get_logger

logger = get_logger(__name__)


def create_redis_client() -> redis.Redis:
    try:
        client = redis.Redis(host=REDIS_HOST, port=REDIS_PORT, password=REDIS_PASSWORD, db=REDIS_DB, decode_responses=True)
        # Test connection
        client.ping()
        logger.info(f"Redis client connected successfully to {REDIS_HOST}:{REDIS_PORT}")
        return client
    except Exception as e:
        logger.error(f"Failed to connect to Redis at {REDIS_HOST}:{REDIS_PORT}: {e}", exc_info=True)
        raise


class RedisBackend:
    """Live-session records. Ids come from INCR so they are strictly increasing."""

    def __init__(self, redis_client: Optional[redis.Redis] = None):
        self.redis_client = redis_client if redis_client is not None else create_redis_client()

    def create_session(self, userurl: str) -> dict:
        session_id = int(self.redis_client.incr(REDIS_SESSION_COUNTER_KEY))
        now = datetime.now().isoformat()
        record = {
            "id": session_id,
            "userurl": userurl,
            "createdAt": now,
            "updatedAt": now,
        }
        key = REDIS_SESSION_KEY.format(session_id=session_id)
        self.redis_client.hset(key, mapping={k: str(v) for k, v in record.items()})
        self.redis_client.zadd(REDIS_SESSION_INDEX_KEY, {str(session_id): session_id})
        logger.info(f"Live session {session_id} created with key: {key}")
        return record

    def get_session(self, session_id: int) -> Optional[dict]:
        logger.debug(f"Fetching live session {session_id}")
        data = self.redis_client.hgetall(REDIS_SESSION_KEY.format(session_id=session_id))
        if not data or "id" not in data:
            logger.debug(f"Live session {session_id} not found in Redis")
            return None
        return _decode_session(data)

    def list_sessions(self) -> list:
        """All sessions, newest (highest id) first."""
        session_ids = self.redis_client.zrevrange(REDIS_SESSION_INDEX_KEY, 0, -1)
        sessions = []
        for session_id in session_ids:
            session = self.get_session(int(session_id))
            if session is None:
                # Index entry outlived its hash
                logger.warning(f"Dropping stale index entry for live session {session_id}")
                self.redis_client.zrem(REDIS_SESSION_INDEX_KEY, session_id)
                continue
            sessions.append(session)
        logger.debug(f"Listed {len(sessions)} live sessions")
        return sessions

    def update_session(self, session_id: int, userurl: str) -> Optional[dict]:
        key = REDIS_SESSION_KEY.format(session_id=session_id)

        # Check and write under WATCH; a concurrent delete makes the transaction retry the check
        def _update(pipe) -> bool:
            if not pipe.exists(key):
                return False
            pipe.multi()
            pipe.hset(key, mapping={"userurl": userurl, "updatedAt": datetime.now().isoformat()})
            return True

        updated = self.redis_client.transaction(_update, key, value_from_callable=True)
        if not updated:
            logger.debug(f"Cannot update live session {session_id}: not found")
            return None
        logger.info(f"Live session {session_id} updated")
        return self.get_session(session_id)

    def delete_session(self, session_id: int) -> Optional[dict]:
        session = self.get_session(session_id)
        if session is None:
            return None
        self.redis_client.delete(REDIS_SESSION_KEY.format(session_id=session_id))
        self.redis_client.zrem(REDIS_SESSION_INDEX_KEY, str(session_id))
        logger.info(f"Live session {session_id} deleted")
        return session


def _decode_session(data: dict) -> dict:
    return {
        "id": int(data["id"]),
        "userurl": data.get("userurl", ""),
        "createdAt": data.get("createdAt", ""),
        "updatedAt": data.get("updatedAt", ""),
    }


@lru_cache(maxsize=1)
def get_redis_backend() -> RedisBackend:
    return RedisBackend()
