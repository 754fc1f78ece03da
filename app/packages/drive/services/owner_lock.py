"""按用户串行化子树变更：同一用户的重命名/移动/删除/恢复在级联期间互斥。

优先使用 Redis 分布式锁（多进程/多实例部署时有效），不可用时回退到进程内锁。
键：drive:owner-lock:{owner_id}
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

import redis
from redis.exceptions import LockError

from app.packages.drive.core.config import get_settings
from app.packages.drive.core.exceptions import ConflictException
from app.packages.drive.core.logger import logger


class _InMemoryOwnerLocks:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        # owner_id -> [锁, 持有或等待该锁的线程数]；计数归零即移除
        self._entries: dict[int, list] = {}

    def _checkout(self, owner_id: int) -> threading.RLock:
        with self._guard:
            entry = self._entries.get(owner_id)
            if entry is None:
                entry = [threading.RLock(), 0]
                self._entries[owner_id] = entry
            entry[1] += 1
            return entry[0]

    def _checkin(self, owner_id: int) -> None:
        with self._guard:
            entry = self._entries.get(owner_id)
            if entry is None:
                return
            entry[1] -= 1
            if entry[1] <= 0:
                del self._entries[owner_id]

    @contextmanager
    def hold(self, owner_id: int, *, timeout: int, wait: int) -> Iterator[None]:
        lock = self._checkout(owner_id)
        try:
            if not lock.acquire(timeout=wait):
                raise ConflictException("当前用户有其他目录操作正在进行，请稍后重试", {"ownerId": owner_id})
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(owner_id)


class _RedisOwnerLocks:
    def __init__(self, url: str) -> None:
        self._client = redis.Redis.from_url(url, decode_responses=True)
        try:
            self._client.ping()
        except Exception as exc:
            raise RuntimeError(f"Redis not available: {exc}") from exc

    def _key(self, owner_id: int) -> str:
        return f"drive:owner-lock:{owner_id}"

    @contextmanager
    def hold(self, owner_id: int, *, timeout: int, wait: int) -> Iterator[None]:
        lock = self._client.lock(self._key(owner_id), timeout=timeout, blocking_timeout=wait)
        if not lock.acquire():
            raise ConflictException("当前用户有其他目录操作正在进行，请稍后重试", {"ownerId": owner_id})
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                # 锁已过期被他人持有：本次操作已完成，只记录以便调大 OWNER_LOCK_TIMEOUT_SECONDS
                logger.warning("Owner lock for %s expired before release", owner_id, exc_info=True)


class OwnerLockService:
    def __init__(self) -> None:
        self._backend: Optional[_InMemoryOwnerLocks | _RedisOwnerLocks] = None
        self._init_guard = threading.Lock()

    def _get_backend(self) -> _InMemoryOwnerLocks | _RedisOwnerLocks:
        if self._backend is not None:
            return self._backend
        with self._init_guard:
            if self._backend is None:
                self._backend = self._build_backend()
        return self._backend

    def _build_backend(self) -> _InMemoryOwnerLocks | _RedisOwnerLocks:
        settings = get_settings()
        mode = (settings.owner_lock_backend or "auto").strip().lower()
        if mode == "memory":
            return _InMemoryOwnerLocks()
        try:
            backend = _RedisOwnerLocks(settings.redis_url)
            logger.info("Owner lock service using Redis: %s", settings.redis_url)
            return backend
        except Exception:
            if mode == "redis":
                raise
            logger.warning("Owner lock service falling back to in-process locks")
            return _InMemoryOwnerLocks()

    @contextmanager
    def hold(self, owner_id: int) -> Iterator[None]:
        settings = get_settings()
        with self._get_backend().hold(
            owner_id,
            timeout=settings.owner_lock_timeout_seconds,
            wait=settings.owner_lock_wait_seconds,
        ):
            yield


owner_lock_service = OwnerLockService()
