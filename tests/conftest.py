"""Shared fixtures for the exporter tests."""
import json
from typing import Dict, Optional

import pytest
import requests
from prometheus_client import CollectorRegistry
from prometheus_client.parser import text_string_to_metric_families

from adguard_exporter.errors import FetchError
from adguard_exporter.poller import SelfMetrics
from adguard_exporter.registry import MetricsRegistry
from adguard_exporter.stats import StatsPayload


def make_response(status_code: int = 200, body=None, raw: Optional[bytes] = None) -> requests.Response:
    """Build a real requests.Response without touching the network."""
    resp = requests.Response()
    resp.status_code = status_code
    resp.url = "http://adguard.test/control/stats"
    resp.encoding = "utf-8"
    resp._content = raw if raw is not None else json.dumps(body if body is not None else {}).encode()
    return resp


class FakeSession:
    """Stands in for requests.Session; returns or raises queued results."""

    def __init__(self, *results):
        self.results = list(results)
        self.auth = None
        self.calls = []
        self.closed = False

    def get(self, url, timeout=None):
        self.calls.append({"url": url, "timeout": timeout, "auth": self.auth})
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def close(self):
        self.closed = True


class StubClient:
    """Stats client returning queued payloads, or raising FetchError."""

    def __init__(self, *results):
        self.results = list(results)
        self.fetch_count = 0

    def fetch(self) -> StatsPayload:
        self.fetch_count += 1
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return StatsPayload.model_validate(result)


def sample_value(output: bytes, name: str, labels: Optional[Dict[str, str]] = None) -> Optional[float]:
    """Find one sample in rendered output; None if absent."""
    labels = labels or {}
    for family in text_string_to_metric_families(output.decode("utf-8")):
        for sample in family.samples:
            if sample.name == name and sample.labels == labels:
                return sample.value
    return None


def label_values(output: bytes, name: str, label_name: str):
    """All values of ``label_name`` present on samples of ``name``."""
    values = set()
    for family in text_string_to_metric_families(output.decode("utf-8")):
        for sample in family.samples:
            if sample.name == name and label_name in sample.labels:
                values.add(sample.labels[label_name])
    return values


@pytest.fixture
def registry():
    return MetricsRegistry(registry=CollectorRegistry())


@pytest.fixture
def self_metrics(registry):
    return SelfMetrics(registry=registry.registry, prefix=registry.prefix)


@pytest.fixture
def fetch_error():
    def _make(message="connection refused"):
        try:
            raise requests.ConnectionError(message)
        except requests.ConnectionError as cause:
            error = FetchError(f"GET http://adguard.test/control/stats failed: {message}")
            error.__cause__ = cause
            return error
    return _make
