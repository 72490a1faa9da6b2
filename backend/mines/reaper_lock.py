# mines/reaper_lock.py
import time
import uuid

import redis
from django.conf import settings


def redis_client():
    return redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)


class LockLost(RuntimeError):
    pass


class ReaperLock:
    """
    Keeps stale-game resolution to one process per key.

    The key holds a random owner token with a TTL. Renewing and releasing
    both go through `_if_owner`, a WATCH/MULTI transaction, so neither can
    touch a key that expired and was taken by another reaper.
    """

    def __init__(self, key: str, ttl_seconds: int, client=None, renew_every: float = None):
        self.key = key
        self.ttl_ms = int(ttl_seconds * 1000)
        self.owner = uuid.uuid4().hex
        self.client = client or redis_client()
        self.renew_every = renew_every if renew_every is not None else max(ttl_seconds / 3, 1)
        self._renew_at = None

    @property
    def held(self) -> bool:
        return self._renew_at is not None

    def acquire(self) -> bool:
        if not self.client.set(self.key, self.owner, nx=True, px=self.ttl_ms):
            return False
        self._renew_at = time.monotonic() + self.renew_every
        return True

    def keep_alive(self):
        """Push the TTL out once per renew interval; LockLost if the key is no longer ours."""
        if not self.held or time.monotonic() < self._renew_at:
            return
        if not self._if_owner(lambda pipe: pipe.pexpire(self.key, self.ttl_ms)):
            self._renew_at = None
            raise LockLost(f"Reaper lock {self.key} expired or changed owner")
        self._renew_at = time.monotonic() + self.renew_every

    def release(self) -> bool:
        if not self.held:
            return False
        self._renew_at = None
        return self._if_owner(lambda pipe: pipe.delete(self.key))

    def _if_owner(self, command) -> bool:
        with self.client.pipeline() as pipe:
            try:
                pipe.watch(self.key)
                if pipe.get(self.key) != self.owner:
                    return False
                pipe.multi()
                command(pipe)
                pipe.execute()
                return True
            except redis.WatchError:
                return False

