import logging
import time
from concurrent.futures import ThreadPoolExecutor

from collector.base import MetricSink
from core.metrics import scrape_families

logger = logging.getLogger(__name__)


def run_collector(collector, scrape=None):
    """Run one collector, returning (sink, success, duration seconds)."""
    sink = MetricSink()
    start = time.perf_counter()
    try:
        success = bool(collector.collect(sink, scrape))
    except Exception:
        logger.exception("Collector %s failed", collector.name)
        success = False
    duration = time.perf_counter() - start

    if not success:
        # a failed collector contributes nothing but its outcome
        sink = MetricSink()
    return sink, success, duration


class Orchestrator:
    """prometheus_client collector fanning a scrape out to every collector.

    Collectors run concurrently, one pool thread each; the scrape completes
    once all of them returned. Each collector gets one duration and one
    success sample no matter how it ended.

    When given, scrape_context is called once per scrape before any
    collector starts, and its result is handed to all of them.
    """

    def __init__(self, collectors, max_workers=None, scrape_context=None):
        self.collectors = list(collectors)
        self.max_workers = max_workers
        self.scrape_context = scrape_context

    def new_scrape(self):
        if self.scrape_context is None:
            return None
        try:
            return self.scrape_context()
        except Exception:
            logger.exception("Error preparing the scrape, collectors will discover on their own")
            return None

    def collect(self):
        duration, success = scrape_families()
        if not self.collectors:
            yield duration
            yield success
            return

        scrape = self.new_scrape()
        workers = self.max_workers or len(self.collectors)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="collector") as executor:
            futures = [(c, executor.submit(run_collector, c, scrape)) for c in self.collectors]
            results = [(c, f.result()) for c, f in futures]

        for c, (sink, ok, elapsed) in results:
            for family in sink:
                yield family
            duration.add_metric([c.name], elapsed)
            success.add_metric([c.name], 1 if ok else 0)
            logger.debug("Collector %s finished in %.3fs, success=%s", c.name, elapsed, ok)

        yield duration
        yield success
