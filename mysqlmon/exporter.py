"""Scrapes one server with a set of scrapers and reports whether it is up."""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Optional

from .base import NAMESPACE, Instance, Scraper
from .metrics import Desc, Metric, ValueType, build_fq_name

EXPORTER = "exporter"
SESSION_SETTINGS_PARAM = "log_slow_filter=%27tmp_table_on_disk,filesort_on_disk%27"
TIMEOUT_PARAM = "lock_wait_timeout={}"
DEFAULT_LOCK_WAIT_TIMEOUT = 2
DEFAULT_PORT = "3306"

MYSQL_UP_DESC = Desc(
    build_fq_name(NAMESPACE, "", "up"),
    "Whether the MySQL server is up.",
)
MYSQL_SCRAPE_COLLECTOR_SUCCESS_DESC = Desc(
    build_fq_name(NAMESPACE, EXPORTER, "collector_success"),
    "mysqld_exporter: Whether a collector succeeded.",
    ("collector",),
)
MYSQL_SCRAPE_DURATION_SECONDS_DESC = Desc(
    build_fq_name(NAMESPACE, EXPORTER, "collector_duration_seconds"),
    "Collector time duration.",
    ("collector",),
)

_LOGGER = logging.getLogger(__name__)
_DEFAULT_ADDRESSES = {"tcp": "127.0.0.1:3306", "unix": "/tmp/mysql.sock"}


def build_dsn(
    dsn: str,
    lock_wait_timeout: int = DEFAULT_LOCK_WAIT_TIMEOUT,
    log_slow_filter: bool = False,
) -> str:
    """Append the session parameters the exporter sets on its connection."""
    params = [TIMEOUT_PARAM.format(int(lock_wait_timeout))]
    if log_slow_filter:
        params.append(SESSION_SETTINGS_PARAM)
    separator = "&" if "?" in dsn else "?"
    return dsn + separator + "&".join(params)


def _has_port(address: str) -> bool:
    if address.startswith("["):
        closing = address.find("]")
        return closing != -1 and address[closing + 1:closing + 2] == ":"
    return address.count(":") == 1


def _ensure_port(address: str) -> str:
    if _has_port(address):
        return address
    if ":" in address:
        return f"[{address}]:{DEFAULT_PORT}"
    return f"{address}:{DEFAULT_PORT}"


def target_from_dsn(dsn: str) -> str:
    """Return the server address named by a DSN, with defaults filled in.

    The DSN has the form [user[:password]@][net[(addr)]]/dbname[?params].
    Raises ValueError when the DSN is malformed.
    """
    slash = dsn.rfind("/")
    if slash == -1:
        if dsn:
            raise ValueError("invalid DSN: missing the slash separating the database name")
        prefix = ""
    else:
        prefix = dsn[:slash]

    at = prefix.rfind("@")
    location = prefix[at + 1:] if at != -1 else prefix

    net, address = location, ""
    opening = location.find("(")
    if opening != -1:
        if not location.endswith(")"):
            raise ValueError(
                "invalid DSN: network address not terminated (missing closing brace)"
            )
        net = location[:opening]
        address = location[opening + 1:-1]

    if not net:
        net = "tcp"
    if not address:
        address = _DEFAULT_ADDRESSES.get(net, "")
        if not address:
            raise ValueError(f"default addr for network {net!r} unknown")
    if net == "tcp":
        address = _ensure_port(address)
    return address


class Exporter:
    """Collects metrics from one server through a set of scrapers."""

    def __init__(
        self,
        dsn: str,
        scrapers: Iterable[Scraper],
        connect: Callable[[str], Instance],
        lock_wait_timeout: int = DEFAULT_LOCK_WAIT_TIMEOUT,
        log_slow_filter: bool = False,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.dsn = build_dsn(dsn, lock_wait_timeout, log_slow_filter)
        self.scrapers = list(scrapers)
        self._connect = connect
        self._logger = logger or _LOGGER

    def describe(self) -> list[Desc]:
        """Descriptors of the metrics the exporter itself reports."""
        return [
            MYSQL_UP_DESC,
            MYSQL_SCRAPE_DURATION_SECONDS_DESC,
            MYSQL_SCRAPE_COLLECTOR_SUCCESS_DESC,
        ]

    def collect(self) -> list[Metric]:
        """Scrape the server; the last metric says whether it was up."""
        metrics: list[Metric] = []
        up = self._scrape(metrics)
        metrics.append(Metric(MYSQL_UP_DESC, ValueType.GAUGE, up))
        return metrics

    def _scrape(self, metrics: list[Metric]) -> float:
        started = time.perf_counter()
        try:
            instance = self._connect(self.dsn)
        except Exception as exc:
            self._logger.error("Error opening connection to database: %s", exc)
            return 0.0

        with instance:
            try:
                self._ping(instance)
            except Exception as exc:
                self._logger.error("Error pinging mysqld: %s", exc)
                return 0.0

            metrics.append(
                Metric(
                    MYSQL_SCRAPE_DURATION_SECONDS_DESC,
                    ValueType.GAUGE,
                    time.perf_counter() - started,
                    ("connection",),
                )
            )

            server_version = instance.version_major_minor
            for scraper in self.scrapers:
                if server_version < scraper.version:
                    continue
                metrics.extend(self._run_scraper(scraper, instance))
        return 1.0

    @staticmethod
    def _ping(instance: Instance) -> None:
        ping = getattr(instance.connection, "ping", None)
        if callable(ping):
            ping()

    def _run_scraper(self, scraper: Scraper, instance: Instance) -> list[Metric]:
        label = "collect." + scraper.name
        started = time.perf_counter()
        collected: list[Metric] = []
        success = 1.0
        try:
            for metric in scraper.scrape(instance, self._logger.getChild(scraper.name)):
                collected.append(metric)
        except Exception as exc:
            self._logger.error(
                "Error from scraper: scraper=%s target=%s err=%s",
                scraper.name,
                self._target(),
                exc,
            )
            success = 0.0
        collected.append(
            Metric(MYSQL_SCRAPE_COLLECTOR_SUCCESS_DESC, ValueType.GAUGE, success, (label,))
        )
        collected.append(
            Metric(
                MYSQL_SCRAPE_DURATION_SECONDS_DESC,
                ValueType.GAUGE,
                time.perf_counter() - started,
                (label,),
            )
        )
        return collected

    def _target(self) -> str:
        try:
            return target_from_dsn(self.dsn)
        except ValueError as exc:
            self._logger.error("Error parsing DSN: %s", exc)
            return ""