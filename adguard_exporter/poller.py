"""Poll orchestration: fetch stats once and apply them to the registry."""
import logging
import time

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

from adguard_exporter.errors import FetchError
from adguard_exporter.registry import MetricsRegistry
from adguard_exporter.stats_client import AdGuardStatsClient

logger = logging.getLogger(__name__)


class SelfMetrics:
    """Self-monitoring metrics for the exporter.

    These are rendered together with the AdGuard series but change on every
    poll (duration histogram, last success time), so two scrapes of an
    unchanged AdGuard instance differ in these lines only.
    """

    def __init__(self, registry=None, prefix=""):
        if registry is None:
            registry = CollectorRegistry()

        self.up = Gauge(
            f"{prefix}up",
            "Whether the last query of the AdGuard stats endpoint succeeded",
            registry=registry
        )

        self.fetch_errors_total = Counter(
            f"{prefix}exporter_fetch_errors_total",
            "Total number of failed stats fetches",
            registry=registry
        )

        self.poll_duration_seconds = Histogram(
            f"{prefix}exporter_poll_duration_seconds",
            "Duration of each poll (fetch and update) in seconds",
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=registry
        )

        self.last_success_timestamp = Gauge(
            f"{prefix}exporter_last_success_timestamp_seconds",
            "Unix time of the last successful poll",
            registry=registry
        )

    def record_success(self, duration: float):
        """Record a successful poll."""
        self.up.set(1)
        self.poll_duration_seconds.observe(duration)
        self.last_success_timestamp.set_to_current_time()

    def record_failure(self, duration: float):
        """Record a failed poll."""
        self.up.set(0)
        self.fetch_errors_total.inc()
        self.poll_duration_seconds.observe(duration)


class MetricsPoller:
    """Runs one fetch-and-update cycle per scrape."""

    def __init__(self, client: AdGuardStatsClient, registry: MetricsRegistry, self_metrics: SelfMetrics = None):
        self.client = client
        self.registry = registry
        self.self_metrics = self_metrics
        self.poll_count = 0

    def update_metrics(self) -> bool:
        """
        Fetch the stats and apply them to the registry.

        A failed fetch is logged and leaves the registry untouched, so the
        scrape still serves the previous values.

        Returns:
            True if the registry was updated
        """
        poll_start = time.time()
        self.poll_count += 1

        try:
            stats = self.client.fetch()
        except FetchError as e:
            logger.error(f"Error fetching AdGuard stats: {e} (cause: {e.__cause__!r})")
            if self.self_metrics:
                self.self_metrics.record_failure(time.time() - poll_start)
            return False

        self.registry.apply(stats)

        poll_duration = time.time() - poll_start
        if self.self_metrics:
            self.self_metrics.record_success(poll_duration)

        logger.debug(f"Poll {self.poll_count}: registry updated in {poll_duration:.3f}s")
        return True
