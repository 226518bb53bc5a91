"""Prometheus exporter for AdGuard Home statistics."""

__version__ = "0.1.0"
