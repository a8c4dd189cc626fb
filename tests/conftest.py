"""Shared fixtures: an in-memory Redis stand-in and application clients."""

import pytest
from fastapi.testclient import TestClient

from app import create_app
from backend import RedisBackend, get_redis_backend
from signaling.coordinator import SessionCoordinator


class FakeRedis:
    """Implements the handful of Redis commands RedisBackend issues."""

    def __init__(self):
        self.strings = {}
        self.hashes = {}
        self.zsets = {}
        # Bumped on every write, for WATCH
        self.versions = {}

    def _touch(self, key):
        self.versions[key] = self.versions.get(key, 0) + 1

    def incr(self, key):
        self._touch(key)
        self.strings[key] = int(self.strings.get(key, 0)) + 1
        return self.strings[key]

    def hset(self, key, mapping):
        self._touch(key)
        self.hashes.setdefault(key, {}).update({k: str(v) for k, v in mapping.items()})
        return len(mapping)

    def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    def exists(self, key):
        return int(key in self.hashes or key in self.strings or key in self.zsets)

    def delete(self, key):
        self._touch(key)
        removed = 0
        for store in (self.strings, self.hashes, self.zsets):
            if key in store:
                del store[key]
                removed += 1
        return removed

    def zadd(self, key, mapping):
        self._touch(key)
        self.zsets.setdefault(key, {}).update(mapping)
        return len(mapping)

    def zrem(self, key, member):
        self._touch(key)
        return int(self.zsets.get(key, {}).pop(str(member), None) is not None)

    def zrevrange(self, key, start, end):
        members = sorted(self.zsets.get(key, {}).items(), key=lambda item: item[1], reverse=True)
        ids = [member for member, _ in members]
        return ids[start:] if end == -1 else ids[start:end + 1]

    def transaction(self, func, *watches, value_from_callable=False):
        while True:
            pipe = FakePipeline(self)
            seen = {key: self.versions.get(key, 0) for key in watches}
            result = func(pipe)
            if any(self.versions.get(key, 0) != version for key, version in seen.items()):
                continue
            for name, args, kwargs in pipe.queued:
                getattr(self, name)(*args, **kwargs)
            return result if value_from_callable else [True] * len(pipe.queued)


class FakePipeline:
    """Reads run immediately until multi(); writes after it are queued for EXEC."""

    def __init__(self, redis):
        self.redis = redis
        self.queued = []

    def exists(self, key):
        return self.redis.exists(key)

    def multi(self):
        pass

    def hset(self, key, mapping):
        self.queued.append(("hset", (key,), {"mapping": mapping}))


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def redis_backend(fake_redis):
    return RedisBackend(fake_redis)


@pytest.fixture
def coordinator():
    return SessionCoordinator()


@pytest.fixture
def app(coordinator, redis_backend):
    application = create_app(coordinator)
    application.dependency_overrides[get_redis_backend] = lambda: redis_backend
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def drain(connection):
    """Pop every queued outbound message for a connection."""
    messages = []
    while not connection.outbox.empty():
        message = connection.outbox.get_nowait()
        if message is not None:
            messages.append(message)
    return messages


def events(connection, name):
    return [message["data"] for message in drain(connection) if message["event"] == name]
