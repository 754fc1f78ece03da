"""按用户互斥锁测试（进程内后端）：串行顺序、等待超时与锁表回收。"""

import threading
import time

import pytest

from app.packages.drive.core.config import get_settings
from app.packages.drive.core.exceptions import ConflictException
from app.packages.drive.services.owner_lock import owner_lock_service


def _hold_in_thread(owner_id, events, entered, release=None, pause=0.2):
    def _run():
        with owner_lock_service.hold(owner_id):
            events.append("t-in")
            entered.set()
            if release is not None:
                release.wait(5)
            else:
                time.sleep(pause)
            events.append("t-out")

    worker = threading.Thread(target=_run)
    worker.start()
    return worker


def test_same_owner_operations_run_one_after_another(owner_id):
    events = []
    entered = threading.Event()
    worker = _hold_in_thread(owner_id, events, entered)

    assert entered.wait(5)
    with owner_lock_service.hold(owner_id):
        events.append("main")
    worker.join(5)

    assert events == ["t-in", "t-out", "main"]


def test_other_owner_is_not_blocked(owner_id):
    events = []
    entered = threading.Event()
    release = threading.Event()
    worker = _hold_in_thread(owner_id, events, entered, release=release)

    assert entered.wait(5)
    try:
        with owner_lock_service.hold(owner_id + 100000):
            events.append("other")
    finally:
        release.set()
        worker.join(5)

    assert events == ["t-in", "other", "t-out"]


def test_busy_owner_lock_times_out_with_conflict(owner_id, monkeypatch):
    monkeypatch.setattr(get_settings(), "owner_lock_wait_seconds", 0)
    events = []
    entered = threading.Event()
    release = threading.Event()
    worker = _hold_in_thread(owner_id, events, entered, release=release)

    assert entered.wait(5)
    try:
        with pytest.raises(ConflictException) as exc_info:
            with owner_lock_service.hold(owner_id):
                events.append("main")
    finally:
        release.set()
        worker.join(5)

    assert exc_info.value.status_code == 409
    assert exc_info.value.data == {"ownerId": owner_id}
    assert events == ["t-in", "t-out"]


def test_released_locks_are_dropped_from_the_table(owner_id, monkeypatch):
    backend = owner_lock_service._get_backend()

    with owner_lock_service.hold(owner_id):
        with owner_lock_service.hold(owner_id):
            assert owner_id in backend._entries
        assert owner_id in backend._entries
    assert owner_id not in backend._entries

    monkeypatch.setattr(get_settings(), "owner_lock_wait_seconds", 0)
    entered = threading.Event()
    release = threading.Event()
    worker = _hold_in_thread(owner_id, [], entered, release=release)
    assert entered.wait(5)
    try:
        with pytest.raises(ConflictException):
            with owner_lock_service.hold(owner_id):
                pass
        # 超时失败的等待者不应残留计数
        assert backend._entries[owner_id][1] == 1
    finally:
        release.set()
        worker.join(5)
    assert owner_id not in backend._entries
