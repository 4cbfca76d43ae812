import logging

from collector.base import Collector
from collector.filesys.mounts import (
    read_mounts,
    storage_mounts,
    volume_id_from_device,
)
from collector.filesys.stuck_mounts import (
    StuckMountError,
    StuckMountRegistry,
    guarded_statfs,
    statfs,
)
from collector.volume.identity import ScrapeVolumes
from collector.volume.volumes import VolumeDirectoryError
from core.metrics import filesystem_families

logger = logging.getLogger(__name__)


class FilesysCollector(Collector):
    name = "filesystem"

    def __init__(self, settings, registry=None, client_factory=None, stat_func=statfs, read_mounts=read_mounts):
        self.settings = settings
        self.stuck_mounts = registry if registry is not None else StuckMountRegistry()
        self.client_factory = client_factory
        self.stat_func = stat_func
        self.read_mounts = read_mounts

    def collect(self, sink, scrape=None):
        if scrape is None:
            scrape = ScrapeVolumes.discover(self.settings, self.client_factory)

        try:
            volumes = scrape.get()
        except VolumeDirectoryError as e:
            logger.error("Error getting Ondat volumes: %s", e)
            return False

        try:
            mounts = storage_mounts(self.read_mounts(), self.settings.VOLUMES_PATH)
        except OSError as e:
            logger.error("Error reading mount points: %s", e)
            return False

        claims = {v.internal_id: (v.claim_name, v.claim_namespace) for v in volumes}
        families = filesystem_families()
        count = 0

        for m in mounts:
            pvc, pvc_namespace = claims.get(volume_id_from_device(m.device), ("", ""))
            labels = [pvc, pvc_namespace, m.device, m.fs_type, m.mount_point]

            if self.stuck_mounts.is_stuck(m.mount_point):
                logger.debug("Mount point %s is in an unresponsive state", m.mount_point)
                families["device_error"].add_metric(labels, 1)
                continue

            try:
                stats = guarded_statfs(
                    m.mount_point,
                    self.stuck_mounts,
                    timeout=self.settings.MOUNT_TIMEOUT,
                    stat_func=self.stat_func,
                )
            except StuckMountError as e:
                logger.error("%s", e)
                families["device_error"].add_metric(labels, 1)
                continue
            except OSError as e:
                logger.error("Error on statfs() for %s (%s): %s", m.mount_point, m.device, e)
                families["device_error"].add_metric(labels, 1)
                continue

            families["size_bytes"].add_metric(labels, stats.size)
            families["free_bytes"].add_metric(labels, stats.free)
            families["avail_bytes"].add_metric(labels, stats.avail)
            families["files"].add_metric(labels, stats.files)
            families["files_free"].add_metric(labels, stats.files_free)
            families["readonly"].add_metric(labels, 1 if m.readonly else 0)
            families["device_error"].add_metric(labels, 0)
            count += 1

        logger.debug("Finished filesystem collector, %d mounts read", count)
        sink.extend(families.values())
        return True
