import logging
import os
import threading
from collections import namedtuple

STAT_TIMEOUT = 5.0  # seconds

logger = logging.getLogger(__name__)


class StuckMountError(Exception):
    def __init__(self, mount_point):
        super().__init__(f"statfs on {mount_point} did not return in time")
        self.mount_point = mount_point


class StuckMountRegistry:
    """Mount points whose statfs call hung, shared across scrape cycles.

    The lock is public so the watchdog and the stat worker can check the
    completion signal and update the registry in one critical section.
    """

    def __init__(self):
        self.lock = threading.Lock()
        self._mounts = set()

    def __contains__(self, mount_point):
        with self.lock:
            return mount_point in self._mounts

    def __len__(self):
        with self.lock:
            return len(self._mounts)

    def is_stuck(self, mount_point):
        return mount_point in self

    # the two helpers below expect self.lock to be held
    def _mark(self, mount_point):
        self._mounts.add(mount_point)

    def _clear(self, mount_point):
        if mount_point in self._mounts:
            self._mounts.discard(mount_point)
            return True
        return False

    def mark(self, mount_point):
        with self.lock:
            self._mark(mount_point)

    def clear(self, mount_point):
        with self.lock:
            return self._clear(mount_point)

    def reset(self):
        with self.lock:
            self._mounts.clear()


FsStats = namedtuple("FsStats", ["size", "free", "avail", "files", "files_free"])


def statfs(path):
    """Capacity of the filesystem mounted at path, sizes in bytes."""
    vfs = os.statvfs(path)
    block = vfs.f_frsize
    return FsStats(
        size=vfs.f_blocks * block,
        free=vfs.f_bfree * block,
        avail=vfs.f_bavail * block,
        files=vfs.f_files,
        files_free=vfs.f_ffree,
    )


def _stat_worker(mount_point, registry, completed, outcome, stat_func):
    try:
        result = stat_func(mount_point)
    except Exception as e:
        with registry.lock:
            outcome["error"] = e
            completed.set()
        return

    with registry.lock:
        outcome["stats"] = result
        completed.set()
        recovered = registry._clear(mount_point)
    if recovered:
        logger.info("Mount point %s has recovered, monitoring will resume", mount_point)


def _watchdog(mount_point, registry, completed):
    with registry.lock:
        # completion may have landed right after the deadline
        if completed.is_set():
            return
        registry._mark(mount_point)
    logger.warning(
        "Mount point %s timed out, it is labeled as stuck and will not be monitored",
        mount_point,
    )


def guarded_statfs(mount_point, registry, timeout=STAT_TIMEOUT, stat_func=statfs):
    """Run stat_func on mount_point, giving up after timeout seconds.

    The call runs on a daemon thread raced by a watchdog timer; both observe
    the same completion event under the registry lock, so a mount point is
    either marked stuck by the watchdog or left alone, never both. A timed
    out call is abandoned, and if it ever returns successfully it clears the
    mount from the registry.
    """
    completed = threading.Event()
    outcome = {}

    worker = threading.Thread(
        target=_stat_worker,
        args=(mount_point, registry, completed, outcome, stat_func),
        name=f"statfs {mount_point}",
        daemon=True,
    )
    watchdog = threading.Timer(timeout, _watchdog, args=(mount_point, registry, completed))
    watchdog.daemon = True

    watchdog.start()
    worker.start()

    if not completed.wait(timeout):
        # let the watchdog settle the registry before reporting
        watchdog.join()
        with registry.lock:
            done = completed.is_set()
        if not done:
            raise StuckMountError(mount_point)
    else:
        watchdog.cancel()

    if "error" in outcome:
        raise outcome["error"]
    return outcome["stats"]
