"""Metric series definitions and sample value types."""
from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class LabeledSample:
    """A single value of a labeled series, keyed by its one label value."""
    label: str
    value: float


@dataclass(frozen=True)
class MetricSeries:
    """A gauge series exported on every scrape.

    Names are stored without the exporter prefix; the registry adds it when
    the series is collected.
    """
    name: str
    help_text: str
    label_name: Optional[str] = None

    @property
    def kind(self) -> str:
        return "labeled" if self.label_name else "scalar"

    @property
    def is_labeled(self) -> bool:
        return self.label_name is not None


# Scalars
TOTAL_DNS_QUERIES = "total_dns_queries"
BLOCKED_DNS_QUERIES = "blocked_dns_queries"
BLOCKED_PERCENT = "blocked_percent"
AVG_PROCESSING_TIME = "avg_processing_time"
NUM_REPLACED_SAFEBROWSING = "num_replaced_safebrowsing"
NUM_REPLACED_SAFESEARCH = "num_replaced_safesearch"
NUM_REPLACED_PARENTAL = "num_replaced_parental"

# Labeled
TIME_UNITS = "time_units"
TOP_CLIENTS = "top_clients"
TOP_BLOCKED_DOMAINS = "top_blocked_domains"
TOP_QUERIED_DOMAINS = "top_queried_domains"
TOP_UPSTREAMS_RESPONSES = "top_upstreams_responses"
TOP_UPSTREAMS_AVG_TIME = "top_upstreams_avg_time"
PERIODIC_DNS_QUERIES = "periodic_dns_queries"
PERIODIC_BLOCKED_FILTERING = "periodic_blocked_filtering"
PERIODIC_REPLACED_SAFEBROWSING = "periodic_replaced_safebrowsing"
PERIODIC_REPLACED_PARENTAL = "periodic_replaced_parental"


ALL_SERIES: List[MetricSeries] = [
    MetricSeries(TIME_UNITS, "Time units used by AdGuard metrics", "time_unit"),
    MetricSeries(TOTAL_DNS_QUERIES, "Total DNS queries"),
    MetricSeries(BLOCKED_DNS_QUERIES, "Blocked DNS queries"),
    MetricSeries(BLOCKED_PERCENT, "Percentage of blocked DNS queries"),
    MetricSeries(AVG_PROCESSING_TIME, "Average DNS query processing time"),
    MetricSeries(TOP_CLIENTS, "Top clients by number of DNS queries", "client"),
    MetricSeries(TOP_BLOCKED_DOMAINS, "Top domains blocked by AdGuard Home", "domain"),
    MetricSeries(TOP_QUERIED_DOMAINS, "Top domains queried by clients", "domain"),
    MetricSeries(TOP_UPSTREAMS_RESPONSES, "Top upstream responses", "upstream"),
    MetricSeries(TOP_UPSTREAMS_AVG_TIME, "Top upstream average response time", "upstream"),
    MetricSeries(NUM_REPLACED_SAFEBROWSING, "Number of requests replaced by Safebrowsing"),
    MetricSeries(NUM_REPLACED_SAFESEARCH, "Number of requests replaced by Safesearch"),
    MetricSeries(NUM_REPLACED_PARENTAL, "Number of requests replaced by Parental control"),
    MetricSeries(PERIODIC_DNS_QUERIES, "Periodic DNS queries", "period"),
    MetricSeries(PERIODIC_BLOCKED_FILTERING, "Periodic blocked filtering", "period"),
    MetricSeries(PERIODIC_REPLACED_SAFEBROWSING, "Periodic replaced safebrowsing", "period"),
    MetricSeries(PERIODIC_REPLACED_PARENTAL, "Periodic replaced parental", "period"),
]


def series_by_name(series: List[MetricSeries]) -> Dict[str, MetricSeries]:
    """Index series definitions by name, rejecting duplicates."""
    index: Dict[str, MetricSeries] = {}
    for s in series:
        if s.name in index:
            raise ValueError(f"Duplicate series name: {s.name}")
        index[s.name] = s
    return index
