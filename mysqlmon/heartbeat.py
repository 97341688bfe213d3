"""Replication delay from a heartbeat table."""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from .base import NAMESPACE, Instance, Scraper, as_float, as_int
from .metrics import Desc, Metric, ValueType, build_fq_name

SUBSYSTEM = "heartbeat"
HEARTBEAT_QUERY = "SELECT UNIX_TIMESTAMP(ts), UNIX_TIMESTAMP({now}), server_id from `{database}`.`{table}`"

HEARTBEAT_STORED_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "stored_timestamp_seconds"),
    "Timestamp stored in the heartbeat table.",
    ("server_id",),
)
HEARTBEAT_NOW_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "now_timestamp_seconds"),
    "Timestamp of the current server.",
    ("server_id",),
)


class ScrapeHeartbeat(Scraper):
    """Collects from a heartbeat table with columns ts and server_id."""

    name = "heartbeat"
    help = "Collect from heartbeat"
    version = 5.1

    def __init__(
        self, database: str = "heartbeat", table: str = "heartbeat", utc: bool = False
    ) -> None:
        self.database = database
        self.table = table
        self.utc = utc

    def now_expr(self) -> str:
        """SQL expression for the current server time."""
        return "UTC_TIMESTAMP(6)" if self.utc else "NOW(6)"

    def query(self) -> str:
        """The statement reading stored and current timestamps."""
        return HEARTBEAT_QUERY.format(
            now=self.now_expr(), database=self.database, table=self.table
        )

    def scrape(
        self, instance: Instance, logger: Optional[logging.Logger] = None
    ) -> Iterator[Metric]:
        result = instance.query(self.query())
        for ts, now, server_id in result.rows:
            stored = as_float(ts)
            current = as_float(now)
            label = str(as_int(server_id))
            yield Metric(HEARTBEAT_NOW_DESC, ValueType.GAUGE, current, (label,))
            yield Metric(HEARTBEAT_STORED_DESC, ValueType.GAUGE, stored, (label,))