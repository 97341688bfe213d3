"""Generic metrics from SHOW ENGINE TOKUDB STATUS."""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from .base import Instance, Scraper, as_text, new_desc, parse_status
from .metrics import Metric, ValueType

SUBSYSTEM = "engine_tokudb"
ENGINE_TOKUDB_STATUS_QUERY = "SHOW ENGINE TOKUDB STATUS"

_REPLACEMENTS = str.maketrans(
    {
        ">": "",
        ",": "",
        ":": "",
        "(": "",
        ")": "",
        " ": "_",
        "-": "_",
        "+": "and",
        "/": "and",
    }
)


def sanitize_tokudb_metric(metric_name: str) -> str:
    """Turn a TokuDB status key into a metric name fragment."""
    return metric_name.translate(_REPLACEMENTS)


class ScrapeEngineTokudbStatus(Scraper):
    """Collects from SHOW ENGINE TOKUDB STATUS."""

    name = "engine_tokudb_status"
    help = "Collect from SHOW ENGINE TOKUDB STATUS"
    version = 5.6

    def scrape(
        self, instance: Instance, logger: Optional[logging.Logger] = None
    ) -> Iterator[Metric]:
        result = instance.query(ENGINE_TOKUDB_STATUS_QUERY)
        for engine, key, value in result.rows:
            as_text(engine)
            key = as_text(key).lower()
            number = parse_status(value)
            if number is None:
                continue
            yield Metric(
                new_desc(
                    SUBSYSTEM,
                    sanitize_tokudb_metric(key),
                    "Generic metric from SHOW ENGINE TOKUDB STATUS.",
                ),
                ValueType.UNTYPED,
                number,
            )