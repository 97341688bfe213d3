"""Query and read-view counts from SHOW ENGINE INNODB STATUS."""

from __future__ import annotations

import logging
import re
from typing import Iterator, Optional

from .base import Instance, Scraper, as_text, new_desc
from .metrics import Metric, ValueType

SUBSYSTEM = "engine_innodb"
ENGINE_INNODB_STATUS_QUERY = "SHOW ENGINE INNODB STATUS"

_QUERIES_RE = re.compile(r"(\d+) queries inside InnoDB, (\d+) queries in queue", re.ASCII)
_VIEWS_RE = re.compile(r"(\d+) read views open inside InnoDB", re.ASCII)


class ScrapeEngineInnodbStatus(Scraper):
    """Collects from SHOW ENGINE INNODB STATUS."""

    name = "engine_innodb_status"
    help = "Collect from SHOW ENGINE INNODB STATUS"
    version = 5.1

    def scrape(
        self, instance: Instance, logger: Optional[logging.Logger] = None
    ) -> Iterator[Metric]:
        result = instance.query(ENGINE_INNODB_STATUS_QUERY)
        status = ""
        # Only the first row carries the monitor output.
        if result.rows:
            type_col, name_col, status_col = result.rows[0]
            as_text(type_col)
            as_text(name_col)
            status = as_text(status_col)

        for line in status.split("\n"):
            queries = _QUERIES_RE.search(line)
            if queries:
                yield Metric(
                    new_desc(SUBSYSTEM, "queries_inside_innodb", "Queries inside InnoDB."),
                    ValueType.GAUGE,
                    float(queries.group(1)),
                )
                yield Metric(
                    new_desc(SUBSYSTEM, "queries_in_queue", "Queries in queue."),
                    ValueType.GAUGE,
                    float(queries.group(2)),
                )
                continue
            views = _VIEWS_RE.search(line)
            if views:
                yield Metric(
                    new_desc(
                        SUBSYSTEM,
                        "read_views_open_inside_innodb",
                        "Read views open inside InnoDB.",
                    ),
                    ValueType.GAUGE,
                    float(views.group(1)),
                )