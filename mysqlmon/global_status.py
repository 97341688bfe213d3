"""Metrics from SHOW GLOBAL STATUS."""

from __future__ import annotations

import logging
import re
from typing import Any, Iterator, Optional

from .base import (
    NAMESPACE,
    Instance,
    Scraper,
    as_text,
    new_desc,
    parse_float,
    parse_status,
    valid_prometheus_name,
)
from .metrics import Desc, Metric, ValueType, build_fq_name

SUBSYSTEM = "global_status"
GLOBAL_STATUS_QUERY = "SHOW GLOBAL STATUS"

_GROUP_RE = re.compile(
    r"(com|handler|connection_errors|innodb_buffer_pool_pages|innodb_rows|performance_schema)_(.*)",
    re.DOTALL,
)

GLOBAL_COMMANDS_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "commands_total"),
    "Total number of executed MySQL commands.",
    ("command",),
)
GLOBAL_HANDLER_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "handlers_total"),
    "Total number of executed MySQL handlers.",
    ("handler",),
)
GLOBAL_CONNECTION_ERRORS_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "connection_errors_total"),
    "Total number of MySQL connection errors.",
    ("error",),
)
GLOBAL_BUFFER_POOL_PAGES_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "buffer_pool_pages"),
    "Innodb buffer pool pages by state.",
    ("state",),
)
GLOBAL_BUFFER_POOL_DIRTY_PAGES_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "buffer_pool_dirty_pages"),
    "Innodb buffer pool dirty pages.",
)
GLOBAL_BUFFER_POOL_PAGE_CHANGES_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "buffer_pool_page_changes_total"),
    "Innodb buffer pool page state changes.",
    ("operation",),
)
GLOBAL_INNODB_ROW_OPS_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "innodb_row_ops_total"),
    "Total number of MySQL InnoDB row operations.",
    ("operation",),
)
GLOBAL_PERFORMANCE_SCHEMA_LOST_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "performance_schema_lost_total"),
    "Total number of MySQL instrumentations that could not be loaded or created due to memory constraints.",
    ("instrumentation",),
)
GALERA_STATUS_INFO_DESC = Desc(
    build_fq_name(NAMESPACE, "galera", "status_info"),
    "PXC/Galera status information.",
    ("wsrep_local_state_uuid", "wsrep_cluster_state_uuid", "wsrep_provider_version"),
)

_EVS_FIELDS = (
    ("min_seconds", "PXC/Galera group communication latency. Min value."),
    ("avg_seconds", "PXC/Galera group communication latency. Avg value."),
    ("max_seconds", "PXC/Galera group communication latency. Max value."),
    ("stdev", "PXC/Galera group communication latency. Standard Deviation."),
    ("sample_size", "PXC/Galera group communication latency. Sample Size."),
)

_TEXT_KEYS = (
    "wsrep_local_state_uuid",
    "wsrep_cluster_state_uuid",
    "wsrep_provider_version",
    "wsrep_evs_repl_latency",
)

_BUFFER_POOL_STATES = {"data", "free", "misc", "old"}


def _text_or_empty(value: Any) -> str:
    return "" if value is None else as_text(value)


def _grouped_metric(group: str, rest: str, number: float) -> Optional[Metric]:
    if group == "com":
        return Metric(GLOBAL_COMMANDS_DESC, ValueType.COUNTER, number, (rest,))
    if group == "handler":
        return Metric(GLOBAL_HANDLER_DESC, ValueType.COUNTER, number, (rest,))
    if group == "connection_errors":
        return Metric(GLOBAL_CONNECTION_ERRORS_DESC, ValueType.COUNTER, number, (rest,))
    if group == "innodb_buffer_pool_pages":
        if rest in _BUFFER_POOL_STATES:
            return Metric(GLOBAL_BUFFER_POOL_PAGES_DESC, ValueType.GAUGE, number, (rest,))
        if rest == "dirty":
            return Metric(GLOBAL_BUFFER_POOL_DIRTY_PAGES_DESC, ValueType.GAUGE, number)
        if rest == "total":
            return None
        return Metric(GLOBAL_BUFFER_POOL_PAGE_CHANGES_DESC, ValueType.COUNTER, number, (rest,))
    if group == "innodb_rows":
        return Metric(GLOBAL_INNODB_ROW_OPS_DESC, ValueType.COUNTER, number, (rest,))
    return Metric(GLOBAL_PERFORMANCE_SCHEMA_LOST_DESC, ValueType.COUNTER, number, (rest,))


def _evs_latency_metrics(latency: str) -> Iterator[Metric]:
    parts = latency.split("/")
    if len(parts) != len(_EVS_FIELDS):
        return
    values = [parse_float(part) for part in parts]
    if any(value is None for value in values):
        return
    for (name, help_text), value in zip(_EVS_FIELDS, values):
        desc = Desc(build_fq_name(NAMESPACE, "galera_evs_repl_latency", name), help_text)
        yield Metric(desc, ValueType.GAUGE, value)


class ScrapeGlobalStatus(Scraper):
    """Collects from SHOW GLOBAL STATUS."""

    name = SUBSYSTEM
    help = "Collect from SHOW GLOBAL STATUS"
    version = 5.1

    def scrape(
        self, instance: Instance, logger: Optional[logging.Logger] = None
    ) -> Iterator[Metric]:
        result = instance.query(GLOBAL_STATUS_QUERY)
        text_items = dict.fromkeys(_TEXT_KEYS, "")

        for key, value in result.rows:
            key = as_text(key)
            number = parse_status(value)
            if number is None:
                # Values without a number are skipped unless they are kept as text.
                if key in text_items:
                    text_items[key] = _text_or_empty(value)
                continue
            metric_name = valid_prometheus_name(key)
            match = _GROUP_RE.fullmatch(metric_name)
            if match is None:
                yield Metric(
                    new_desc(SUBSYSTEM, metric_name, "Generic metric from SHOW GLOBAL STATUS."),
                    ValueType.UNTYPED,
                    number,
                )
                continue
            metric = _grouped_metric(match.group(1), match.group(2), number)
            if metric is not None:
                yield metric

        if text_items["wsrep_local_state_uuid"]:
            yield Metric(
                GALERA_STATUS_INFO_DESC,
                ValueType.GAUGE,
                1.0,
                (
                    text_items["wsrep_local_state_uuid"],
                    text_items["wsrep_cluster_state_uuid"],
                    text_items["wsrep_provider_version"],
                ),
            )

        if text_items["wsrep_evs_repl_latency"]:
            yield from _evs_latency_metrics(text_items["wsrep_evs_repl_latency"])