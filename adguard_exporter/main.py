"""Main entry point for the AdGuard Home Prometheus exporter."""
import argparse
import logging
import sys

from adguard_exporter.api import ExporterAPI
from adguard_exporter.config import LOG_LEVELS, load_config
from adguard_exporter.errors import ConfigurationError
from adguard_exporter.poller import MetricsPoller, SelfMetrics
from adguard_exporter.registry import MetricsRegistry
from adguard_exporter.stats_client import AdGuardStatsClient


def setup_logging(log_level: str):
    """Setup logging configuration."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # Reduce noise from some libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="AdGuard Home Prometheus Exporter - Republish AdGuard Home stats as metrics"
    )
    parser.add_argument(
        "--config",
        "-c",
        help="Optional YAML file with settings; environment variables take precedence"
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        type=str.upper,
        help="Override the configured log level"
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Main function."""
    args = parse_args(argv)

    # Load configuration
    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        sys.exit(1)

    # Setup logging
    setup_logging(args.log_level or config.log_level)
    logger = logging.getLogger(__name__)

    logger.debug(f"AdGuard Home instance: {config.adguard_url}")
    if config.timeout_s is None:
        logger.debug("No request timeout configured for the stats endpoint")

    registry = MetricsRegistry(prefix=config.metric_prefix)
    self_metrics = SelfMetrics(registry=registry.registry, prefix=config.metric_prefix)
    client = AdGuardStatsClient(
        config.adguard_url,
        config.adguard_username,
        config.adguard_password,
        timeout=config.timeout_s
    )
    poller = MetricsPoller(client, registry, self_metrics)
    api = ExporterAPI(poller, registry)

    logger.info(f"AdGuard Prometheus exporter listening on port {config.exporter_port}")
    try:
        api.run(host=config.bind_address, port=config.exporter_port)
    except Exception as e:
        logger.error(f"Exporter API error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        client.close()


if __name__ == "__main__":
    main()
