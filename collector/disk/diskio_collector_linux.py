import logging

from collector.base import Collector
from collector.disk.diskstats import DEFAULT_SECTOR_SIZE, logical_block_size, read_diskstats
from collector.volume.identity import ScrapeVolumes
from collector.volume.volumes import VolumeDirectoryError
from core.metrics import SECONDS_PER_TICK, diskstats_families, disk_info_family

logger = logging.getLogger(__name__)


def counter_values(stats, sector_size):
    """Diskstats counters converted to exported units, optional tail included
    only when the kernel reported it."""
    values = [
        stats.read_ios,
        stats.read_merges,
        stats.read_sectors * sector_size,
        stats.read_ticks * SECONDS_PER_TICK,
        stats.write_ios,
        stats.write_merges,
        stats.write_sectors * sector_size,
        stats.write_ticks * SECONDS_PER_TICK,
        stats.ios_in_progress,
        stats.io_total_ticks * SECONDS_PER_TICK,
        stats.weighted_io_ticks * SECONDS_PER_TICK,
        stats.discard_ios,
        stats.discard_merges,
        stats.discard_sectors,
        None if stats.discard_ticks is None else stats.discard_ticks * SECONDS_PER_TICK,
        stats.flush_requests_completed,
        None if stats.time_spent_flushing is None else stats.time_spent_flushing * SECONDS_PER_TICK,
    ]
    return [float(v) for v in values[: stats.counter_count]]


class DiskIOCollector(Collector):
    name = "diskstats"

    def __init__(self, settings, client_factory=None):
        self.settings = settings
        self.client_factory = client_factory

    def sector_size(self, device):
        try:
            return logical_block_size(device, self.settings.SYS_BLOCK_PATH)
        except (OSError, ValueError) as e:
            logger.warning(
                "Error reading %s logical block size, falling back to %d bytes: %s",
                device, DEFAULT_SECTOR_SIZE, e,
            )
            return DEFAULT_SECTOR_SIZE

    def collect(self, sink, scrape=None):
        if scrape is None:
            scrape = ScrapeVolumes.discover(self.settings, self.client_factory)

        try:
            volumes = scrape.get()
        except VolumeDirectoryError as e:
            logger.error("Error getting Ondat volumes: %s", e)
            return False

        if not volumes:
            logger.info("No Ondat volumes on this node")
            return True

        try:
            diskstats = read_diskstats(self.settings.DISKSTATS_PATH)
        except OSError as e:
            logger.error("Error reading diskstats: %s", e)
            return False

        info = disk_info_family()
        families = diskstats_families()

        for vol in volumes:
            for stats in diskstats:
                # diskstats rows match volumes through major/minor numbers
                if vol.major != stats.major or vol.minor != stats.minor:
                    continue

                info.add_metric(
                    [stats.device_name, vol.claim_name, vol.claim_namespace, str(vol.major), str(vol.minor)],
                    1,
                )

                labels = [stats.device_name, vol.claim_name, vol.claim_namespace]
                sector_size = self.sector_size(stats.device_name)
                for family, value in zip(families, counter_values(stats, sector_size)):
                    family.add_metric(labels, value)

        sink.add(info)
        sink.extend(families)
        return True
