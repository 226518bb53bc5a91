"""Metric registry: turns statistics payloads into Prometheus gauge series."""
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
import logging
import math
import platform
import re
import threading

from prometheus_client import CollectorRegistry, Gauge, generate_latest, CONTENT_TYPE_LATEST
from prometheus_client.core import GaugeMetricFamily

from adguard_exporter import __version__
from adguard_exporter import series as s
from adguard_exporter.errors import MalformedEntryError, RenderError
from adguard_exporter.series import ALL_SERIES, LabeledSample, MetricSeries, series_by_name
from adguard_exporter.stats import StatsPayload

logger = logging.getLogger(__name__)

UNKNOWN_TIME_UNIT = "unknown"

# Plain decimal or exponent notation; no "inf", "nan", "0x10" or "1_000"
NUMERIC_STRING = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

# (series, payload field)
SCALAR_FIELDS: List[Tuple[str, str]] = [
    (s.TOTAL_DNS_QUERIES, "num_dns_queries"),
    (s.BLOCKED_DNS_QUERIES, "num_blocked_filtering"),
    (s.AVG_PROCESSING_TIME, "avg_processing_time"),
    (s.NUM_REPLACED_SAFEBROWSING, "num_replaced_safebrowsing"),
    (s.NUM_REPLACED_SAFESEARCH, "num_replaced_safesearch"),
    (s.NUM_REPLACED_PARENTAL, "num_replaced_parental"),
]

# (series, payload field, fallback label prefix)
KEYED_LIST_FIELDS: List[Tuple[str, str, str]] = [
    (s.TOP_CLIENTS, "top_clients", "client"),
    (s.TOP_BLOCKED_DOMAINS, "top_blocked_domains", "domain"),
    (s.TOP_QUERIED_DOMAINS, "top_queried_domains", "domain"),
    (s.TOP_UPSTREAMS_RESPONSES, "top_upstreams_responses", "upstream"),
    (s.TOP_UPSTREAMS_AVG_TIME, "top_upstreams_avg_time", "upstream"),
]

# (series, payload field)
INDEXED_LIST_FIELDS: List[Tuple[str, str]] = [
    (s.PERIODIC_DNS_QUERIES, "dns_queries"),
    (s.PERIODIC_BLOCKED_FILTERING, "blocked_filtering"),
    (s.PERIODIC_REPLACED_SAFEBROWSING, "replaced_safebrowsing"),
    (s.PERIODIC_REPLACED_PARENTAL, "replaced_parental"),
]

SeriesValue = Union[float, Tuple[LabeledSample, ...]]


def as_number(value: Any) -> Optional[float]:
    """Return ``value`` as a float, or None if it is not a usable number.

    Decimal strings are accepted and a blank string counts as 0. Booleans,
    containers and non-finite values are not numbers.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if not NUMERIC_STRING.fullmatch(text):
            return None
        number = float(text)
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def extract_labeled_value(series_name: str, index: int, entry: Any, prefix: str) -> Tuple[str, float]:
    """
    Read one ``{label: value}`` entry of a top-N list.

    Args:
        series_name: Series the entry belongs to (for error reporting)
        index: Position of the entry in its list
        entry: The raw entry
        prefix: Prefix of the fallback label used when the key is missing

    Returns:
        (label, value) pair

    Raises:
        MalformedEntryError: if the entry is not a mapping or its value is not numeric
    """
    if not isinstance(entry, Mapping):
        raise MalformedEntryError(series_name, index, entry)

    key, raw_value = next(iter(entry.items()), (None, None))
    label = str(key) if key not in (None, "") else f"{prefix}_{index}"

    if raw_value is None:
        return label, 0.0

    value = as_number(raw_value)
    if value is None:
        raise MalformedEntryError(series_name, index, entry)
    return label, value


class MetricsRegistry:
    """Owns the exported series and keeps them in sync with the latest stats.

    Current values live in an immutable mapping that is replaced as a whole
    on every update, so ``collect`` always sees complete sample sets.
    """

    def __init__(
        self,
        prefix: str = "adguard_",
        registry: Optional[CollectorRegistry] = None,
        series: Optional[List[MetricSeries]] = None
    ):
        self.prefix = prefix
        # Use a custom registry to avoid exporting default Python/process metrics
        self.registry = registry if registry is not None else CollectorRegistry()
        self.series: Dict[str, MetricSeries] = series_by_name(series or ALL_SERIES)

        self._write_lock = threading.Lock()
        self._state: Mapping[str, SeriesValue] = MappingProxyType({
            name: (() if definition.is_labeled else 0.0)
            for name, definition in self.series.items()
        })

        self.registry.register(self)

        self.exporter_info = Gauge(
            f"{prefix}exporter_info",
            "Information about the AdGuard Prometheus exporter",
            ["version", "python_version"],
            registry=self.registry
        )
        self.exporter_info.labels(__version__, platform.python_version()).set(1)

        logger.debug(f"Registered {len(self.series)} AdGuard series with prefix '{prefix}'")

    @property
    def content_type(self) -> str:
        return CONTENT_TYPE_LATEST

    def _definition(self, series_name: str, labeled: bool) -> MetricSeries:
        definition = self.series[series_name]
        if definition.is_labeled != labeled:
            raise ValueError(f"Series {series_name} is {definition.kind}")
        return definition

    def _publish(self, series_name: str, value: SeriesValue):
        """Swap in a new state with ``series_name`` replaced."""
        with self._write_lock:
            state = dict(self._state)
            state[series_name] = value
            self._state = MappingProxyType(state)

    def get_value(self, series_name: str) -> float:
        """Current value of a scalar series."""
        self._definition(series_name, labeled=False)
        return self._state[series_name]

    def get_samples(self, series_name: str) -> Tuple[LabeledSample, ...]:
        """Current samples of a labeled series."""
        self._definition(series_name, labeled=True)
        return self._state[series_name]

    def update_scalar(self, series_name: str, value: Any, default: float = 0):
        """Set a scalar series, falling back to ``default`` when the field was absent.

        A value that is present but not numeric also falls back to ``default``
        and is logged.
        """
        self._definition(series_name, labeled=False)
        if value is None:
            self._publish(series_name, float(default))
            return

        number = as_number(value)
        if number is None:
            logger.warning(f"Non-numeric value for {series_name}: {value!r}, using {default}")
            number = float(default)
        self._publish(series_name, number)

    def update_ratio(self, total: Any, blocked: Any):
        """Set the blocked percentage from the total and blocked query counts."""
        total = as_number(total) or 0
        blocked = as_number(blocked) or 0
        percent = (blocked / total) * 100 if total > 0 else 0.0
        self.update_scalar(s.BLOCKED_PERCENT, percent)

    def update_time_unit(self, unit: Any):
        """Replace the time unit series with a single sample for ``unit``."""
        self._definition(s.TIME_UNITS, labeled=True)

        if unit is None or unit == "":
            label = UNKNOWN_TIME_UNIT
        elif isinstance(unit, str):
            label = unit
        elif isinstance(unit, (int, float)) and not isinstance(unit, bool):
            label = str(unit)
        else:
            logger.warning(f"Unusable time unit {unit!r}, using '{UNKNOWN_TIME_UNIT}'")
            label = UNKNOWN_TIME_UNIT

        self._publish(s.TIME_UNITS, (LabeledSample(label, 1.0),))

    def _entries(self, series_name: str, value: Any) -> List[Any]:
        """The list a series is built from; anything but a list counts as empty."""
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            return list(value)
        logger.warning(f"Expected a list for {series_name}, got {type(value).__name__}; clearing series")
        return []

    def update_labeled_from_keyed_list(self, series_name: str, entries: Optional[Iterable[Any]], prefix: str):
        """
        Rebuild a labeled series from a list of single-entry mappings.

        Entries without a key are recorded as ``<prefix>_<index>``. Entries
        whose value is not numeric are skipped with a warning.
        """
        self._definition(series_name, labeled=True)

        samples: Dict[str, float] = {}
        for index, entry in enumerate(self._entries(series_name, entries)):
            try:
                label, value = extract_labeled_value(series_name, index, entry, prefix)
            except MalformedEntryError as e:
                logger.warning(f"Skipping entry: {e}")
                continue
            samples[label] = value

        self._publish(series_name, tuple(LabeledSample(label, value) for label, value in samples.items()))

    def update_labeled_from_indexed_list(self, series_name: str, values: Optional[Iterable[Any]]):
        """Rebuild a labeled series where each position is a time bucket."""
        self._definition(series_name, labeled=True)

        samples = []
        for index, raw_value in enumerate(self._entries(series_name, values)):
            value = as_number(raw_value)
            if value is None:
                logger.debug(f"Skipping non-numeric value at {series_name}[{index}]: {raw_value!r}")
                continue
            samples.append(LabeledSample(str(index), value))

        self._publish(series_name, tuple(samples))

    def apply(self, stats: StatsPayload):
        """Update every series from one statistics payload."""
        for series_name, field in SCALAR_FIELDS:
            self.update_scalar(series_name, getattr(stats, field))

        self.update_ratio(stats.num_dns_queries, stats.num_blocked_filtering)

        self.update_time_unit(stats.time_units)

        for series_name, field, prefix in KEYED_LIST_FIELDS:
            self.update_labeled_from_keyed_list(series_name, getattr(stats, field), prefix)

        for series_name, field in INDEXED_LIST_FIELDS:
            self.update_labeled_from_indexed_list(series_name, getattr(stats, field))

    def _family(self, definition: MetricSeries) -> GaugeMetricFamily:
        name = f"{self.prefix}{definition.name}"
        if definition.is_labeled:
            return GaugeMetricFamily(name, definition.help_text, labels=[definition.label_name])
        return GaugeMetricFamily(name, definition.help_text)

    def describe(self):
        """Yield empty families so the registry can check for name clashes."""
        for definition in self.series.values():
            yield self._family(definition)

    def collect(self):
        """Yield one gauge family per series from a single state snapshot."""
        state = self._state
        for name, definition in self.series.items():
            if definition.is_labeled:
                family = self._family(definition)
                for sample in state[name]:
                    family.add_metric([sample.label], sample.value)
            else:
                family = GaugeMetricFamily(
                    f"{self.prefix}{name}",
                    definition.help_text,
                    value=state[name]
                )
            yield family

    def render(self) -> bytes:
        """Serialize every registered metric in the Prometheus text format."""
        try:
            return generate_latest(self.registry)
        except Exception as e:
            raise RenderError(f"Failed to render metrics: {e}") from e
