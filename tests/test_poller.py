"""Tests for the fetch-and-update cycle."""
import logging

from adguard_exporter import series as s
from adguard_exporter.poller import MetricsPoller

from conftest import StubClient, sample_value


def test_successful_poll_updates_registry(registry, self_metrics):
    client = StubClient({"num_dns_queries": 500, "top_clients": [{"10.0.0.1": 5}]})
    poller = MetricsPoller(client, registry, self_metrics)

    assert poller.update_metrics() is True

    output = registry.render()
    assert sample_value(output, "adguard_total_dns_queries") == 500
    assert sample_value(output, "adguard_up") == 1
    assert sample_value(output, "adguard_exporter_poll_duration_seconds_count") == 1
    assert sample_value(output, "adguard_exporter_last_success_timestamp_seconds") > 0


def test_failed_poll_keeps_previous_values(registry, self_metrics, fetch_error, caplog):
    client = StubClient(
        {"num_dns_queries": 500, "top_clients": [{"10.0.0.1": 5}]},
        fetch_error(),
    )
    poller = MetricsPoller(client, registry, self_metrics)
    poller.update_metrics()

    with caplog.at_level(logging.ERROR, logger="adguard_exporter.poller"):
        assert poller.update_metrics() is False

    output = registry.render()
    assert sample_value(output, "adguard_total_dns_queries") == 500
    assert sample_value(output, "adguard_top_clients", {"client": "10.0.0.1"}) == 5
    assert sample_value(output, "adguard_up") == 0
    assert sample_value(output, "adguard_exporter_fetch_errors_total") == 1

    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert "Error fetching AdGuard stats" in errors[0].getMessage()
    assert "connection refused" in errors[0].getMessage()


def test_failed_first_poll_leaves_zero_state(registry, fetch_error):
    poller = MetricsPoller(StubClient(fetch_error()), registry)

    assert poller.update_metrics() is False
    assert registry.get_value(s.TOTAL_DNS_QUERIES) == 0
    assert registry.get_samples(s.TOP_CLIENTS) == ()


def test_poll_without_self_metrics(registry):
    poller = MetricsPoller(StubClient({"num_dns_queries": 1}), registry)

    assert poller.update_metrics() is True
    assert sample_value(registry.render(), "adguard_up") is None
    assert poller.poll_count == 1


def test_badly_typed_fields_do_not_drop_the_poll(registry, self_metrics):
    client = StubClient(
        {"num_dns_queries": 5},
        {"num_dns_queries": 900, "time_units": 24, "top_clients": [{"a": 1}]},
    )
    poller = MetricsPoller(client, registry, self_metrics)
    poller.update_metrics()

    assert poller.update_metrics() is True

    output = registry.render()
    assert sample_value(output, "adguard_total_dns_queries") == 900
    assert sample_value(output, "adguard_time_units", {"time_unit": "24"}) == 1
    assert sample_value(output, "adguard_top_clients", {"client": "a"}) == 1
    assert sample_value(output, "adguard_up") == 1


def test_repeated_polls_differ_only_in_poll_timing(registry, self_metrics):
    payload = {"num_dns_queries": 500, "time_units": "hours", "top_clients": [{"10.0.0.1": 5}]}
    poller = MetricsPoller(StubClient(payload, payload), registry, self_metrics)
    timing_series = (
        "adguard_exporter_poll_duration_seconds",
        "adguard_exporter_last_success_timestamp_seconds",
    )

    def stable_lines():
        lines = registry.render().decode("utf-8").splitlines()
        return [line for line in lines if not any(name in line for name in timing_series)]

    poller.update_metrics()
    first = stable_lines()
    poller.update_metrics()

    assert stable_lines() == first
