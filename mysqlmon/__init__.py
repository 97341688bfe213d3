"""Scrapers that read MySQL and MariaDB server status as Prometheus-style metrics."""

__version__ = "0.1.0"