from abc import ABC, abstractmethod


class MetricSink:
    """Metric families gathered by one collector during one scrape."""

    def __init__(self):
        self.families = []

    def add(self, family):
        self.families.append(family)

    def extend(self, families):
        self.families.extend(families)

    def __iter__(self):
        return iter(self.families)

    def __len__(self):
        return len(self.families)


class Collector(ABC):
    name = None

    @abstractmethod
    def collect(self, sink, scrape=None):
        """Add metric families to sink, return True on success.

        scrape carries what the orchestrator discovered once for the whole
        scrape cycle; collectors run on their own discover it themselves.
        """
