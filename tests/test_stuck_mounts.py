import threading
import time

import pytest

from collector.filesys.stuck_mounts import (
    StuckMountError,
    FsStats,
    StuckMountRegistry,
    guarded_statfs,
    statfs,
)

STATS = FsStats(size=4096, free=2048, avail=1024, files=10, files_free=5)


class BlockingStat:
    """stat function that hangs until released."""

    def __init__(self):
        self.release = threading.Event()
        self.calls = 0

    def __call__(self, path):
        self.calls += 1
        self.release.wait(10)
        return STATS


def wait_for(predicate, timeout=5):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


@pytest.fixture
def registry():
    r = StuckMountRegistry()
    yield r
    r.reset()


def test_registry(registry):
    registry.mark("/mnt/a")

    assert "/mnt/a" in registry
    assert registry.is_stuck("/mnt/a")
    assert len(registry) == 1
    assert registry.clear("/mnt/a")
    assert not registry.clear("/mnt/a")
    assert len(registry) == 0


def test_guarded_statfs_success(registry):
    assert guarded_statfs("/mnt/a", registry, timeout=1, stat_func=lambda p: STATS) == STATS
    assert len(registry) == 0


def test_guarded_statfs_error_is_raised(registry):
    def fail(path):
        raise PermissionError("denied")

    with pytest.raises(PermissionError):
        guarded_statfs("/mnt/a", registry, timeout=1, stat_func=fail)
    assert len(registry) == 0


def test_guarded_statfs_real_call(tmp_path, registry):
    stats = guarded_statfs(str(tmp_path), registry, timeout=5)

    assert isinstance(stats, FsStats)
    assert stats.size > 0
    assert stats.avail <= stats.free <= stats.size
    assert statfs(str(tmp_path)).files == stats.files


def test_timeout_marks_stuck_then_late_completion_recovers(registry):
    stat = BlockingStat()

    with pytest.raises(StuckMountError):
        guarded_statfs("/mnt/hung", registry, timeout=0.05, stat_func=stat)
    assert registry.is_stuck("/mnt/hung")

    stat.release.set()

    assert wait_for(lambda: not registry.is_stuck("/mnt/hung"))


def test_successful_stat_clears_a_stuck_mount(registry):
    registry.mark("/mnt/a")

    guarded_statfs("/mnt/a", registry, timeout=1, stat_func=lambda p: STATS)

    assert not registry.is_stuck("/mnt/a")


def test_failed_stat_keeps_mount_stuck(registry):
    registry.mark("/mnt/a")

    def fail(path):
        raise OSError("I/O error")

    with pytest.raises(OSError):
        guarded_statfs("/mnt/a", registry, timeout=1, stat_func=fail)
    assert registry.is_stuck("/mnt/a")


def test_many_concurrent_calls_mark_only_hung_mounts(registry):
    stat = BlockingStat()
    results = {}

    def run(path, func):
        try:
            results[path] = guarded_statfs(path, registry, timeout=0.1, stat_func=func)
        except StuckMountError:
            results[path] = "stuck"

    threads = [threading.Thread(target=run, args=(f"/mnt/ok{i}", lambda p: STATS)) for i in range(5)]
    threads += [threading.Thread(target=run, args=(f"/mnt/hung{i}", stat)) for i in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert [results[f"/mnt/ok{i}"] for i in range(5)] == [STATS] * 5
    assert [results[f"/mnt/hung{i}"] for i in range(3)] == ["stuck"] * 3
    assert len(registry) == 3

    stat.release.set()
    assert wait_for(lambda: len(registry) == 0)
