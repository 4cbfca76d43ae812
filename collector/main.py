import logging

from prometheus_client import CollectorRegistry

from collector.disk.diskio_collector_linux import DiskIOCollector
from collector.filesys.filesys_collector_linux import FilesysCollector
from collector.filesys.stuck_mounts import StuckMountRegistry
from collector.orchestrator import Orchestrator
from collector.volume.identity import scrape_context
from core.config import settings

logger = logging.getLogger(__name__)

# one registry for the whole process, it outlives scrape cycles
stuck_mounts = StuckMountRegistry()

COLLECTORS = {
    DiskIOCollector.name: lambda s: DiskIOCollector(s),
    FilesysCollector.name: lambda s: FilesysCollector(s, registry=stuck_mounts),
}


def get_enabled_collectors(settings, factories=COLLECTORS):
    disabled = set(settings.DISABLED_COLLECTORS)
    for name in disabled - set(factories):
        logger.warning("Ignoring unknown collector %r in DISABLED_COLLECTORS", name)

    return [factory(settings) for name, factory in factories.items() if name not in disabled]


def build_registry(settings):
    registry = CollectorRegistry()
    # volumes are discovered once per scrape, then shared by every collector
    registry.register(Orchestrator(
        get_enabled_collectors(settings),
        scrape_context=scrape_context(settings),
    ))
    return registry


register = build_registry(settings)
