"""Metrics from information_schema.innodb_metrics."""

from __future__ import annotations

import logging
import re
from typing import Iterator, Optional

from .base import INFORMATION_SCHEMA, NAMESPACE, Instance, Scraper, as_float, as_text
from .metrics import Desc, Metric, ValueType, build_fq_name

INFO_SCHEMA_INNODB_METRICS_ENABLED_COLUMN_QUERY = """
	SELECT
	    column_name
	  FROM information_schema.columns
	  WHERE table_schema = 'information_schema'
	    AND table_name = 'INNODB_METRICS'
	    AND column_name IN ('status', 'enabled')
	  LIMIT 1
	"""

INFO_SCHEMA_INNODB_METRICS_QUERY = """
		SELECT
		  name, subsystem, type, comment,
		  count
		  FROM information_schema.innodb_metrics
		  WHERE `{column}` = '{value}'"""

_LOGGER = logging.getLogger(__name__)

BUFFER_PAGE_READ_TOTAL_DESC = Desc(
    build_fq_name(NAMESPACE, INFORMATION_SCHEMA, "innodb_metrics_buffer_page_read_total"),
    "Total number of buffer pages read total.",
    ("type",),
)
BUFFER_PAGE_WRITTEN_TOTAL_DESC = Desc(
    build_fq_name(NAMESPACE, INFORMATION_SCHEMA, "innodb_metrics_buffer_page_written_total"),
    "Total number of buffer pages written total.",
    ("type",),
)
BUFFER_POOL_PAGES_DESC = Desc(
    build_fq_name(NAMESPACE, INFORMATION_SCHEMA, "innodb_metrics_buffer_pool_pages"),
    "Total number of buffer pool pages by state.",
    ("state",),
)
BUFFER_POOL_PAGES_DIRTY_DESC = Desc(
    build_fq_name(NAMESPACE, INFORMATION_SCHEMA, "innodb_metrics_buffer_pool_dirty_pages"),
    "Total number of dirty pages in the buffer pool.",
)

_BUFFER_RE = re.compile(r"buffer_(pool_pages)_(.*)")
_BUFFER_PAGE_RE = re.compile(r"buffer_page_(read|written)_(.*)")

_ENABLED_FILTERS = {
    "STATUS": ("status", "enabled"),
    "ENABLED": ("enabled", "1"),
}


def metrics_query(column: str, value: str) -> str:
    """The statement selecting enabled metrics by the given column."""
    return INFO_SCHEMA_INNODB_METRICS_QUERY.format(column=column, value=value)


def _generic_metric(
    subsystem: str, name: str, metric_type: str, comment: str, value: float
) -> Metric:
    metric_name = f"innodb_metrics_{subsystem}_{name}"
    # Counters come as "counter" or "status_counter"; negative values occur
    # through server bugs and are reported as gauges.
    if metric_type in ("counter", "status_counter") and value >= 0:
        desc = Desc(
            build_fq_name(NAMESPACE, INFORMATION_SCHEMA, metric_name + "_total"), comment
        )
        return Metric(desc, ValueType.COUNTER, value)
    desc = Desc(build_fq_name(NAMESPACE, INFORMATION_SCHEMA, metric_name), comment)
    return Metric(desc, ValueType.GAUGE, value)


class ScrapeInnodbMetrics(Scraper):
    """Collects from information_schema.innodb_metrics."""

    name = INFORMATION_SCHEMA + ".innodb_metrics"
    help = "Collect metrics from information_schema.innodb_metrics"
    version = 5.6

    def scrape(
        self, instance: Instance, logger: Optional[logging.Logger] = None
    ) -> Iterator[Metric]:
        logger = logger or _LOGGER
        (enabled_column,) = instance.query_row(INFO_SCHEMA_INNODB_METRICS_ENABLED_COLUMN_QUERY)
        enabled_filter = _ENABLED_FILTERS.get(as_text(enabled_column))
        if enabled_filter is None:
            raise LookupError("Couldn't find column STATUS or ENABLED in innodb_metrics table.")

        result = instance.query(metrics_query(*enabled_filter))
        for name, subsystem, metric_type, comment, count in result.rows:
            name = as_text(name)
            subsystem = as_text(subsystem)
            metric_type = as_text(metric_type)
            comment = as_text(comment)
            value = as_float(count)

            if subsystem == "buffer_page_io":
                match = _BUFFER_PAGE_RE.fullmatch(name)
                if match is None:
                    logger.warning(
                        "innodb_metrics subsystem buffer_page_io returned an invalid name: %s",
                        name,
                    )
                    continue
                desc = (
                    BUFFER_PAGE_READ_TOTAL_DESC
                    if match.group(1) == "read"
                    else BUFFER_PAGE_WRITTEN_TOTAL_DESC
                )
                yield Metric(desc, ValueType.COUNTER, value, (match.group(2),))
                continue

            if subsystem == "buffer":
                match = _BUFFER_RE.fullmatch(name)
                # Unmatched buffer metrics fall through to the generic form.
                if match is not None:
                    state = match.group(2)
                    if state == "total":
                        # An aggregate of the other states.
                        continue
                    if state == "dirty":
                        yield Metric(BUFFER_POOL_PAGES_DIRTY_DESC, ValueType.GAUGE, value)
                    else:
                        yield Metric(BUFFER_POOL_PAGES_DESC, ValueType.GAUGE, value, (state,))
                    continue

            yield _generic_metric(subsystem, name, metric_type, comment, value)