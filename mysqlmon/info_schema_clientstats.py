"""Per-client statistics from information_schema.client_statistics."""

from __future__ import annotations

import logging
from typing import Iterator, NamedTuple, Optional

from .base import (
    INFORMATION_SCHEMA,
    NAMESPACE,
    USERSTAT_CHECK_QUERY,
    Instance,
    Scraper,
    as_float,
    as_text,
)
from .metrics import Desc, Metric, ValueType, build_fq_name

CLIENT_STAT_QUERY = "SELECT * FROM information_schema.client_statistics"

_LOGGER = logging.getLogger(__name__)


class _ColumnMetric(NamedTuple):
    value_type: ValueType
    desc: Desc


def _client_desc(name: str, help_text: str) -> Desc:
    return Desc(
        build_fq_name(NAMESPACE, INFORMATION_SCHEMA, f"client_statistics_{name}"),
        help_text,
        ("client",),
    )


# Known columns with their types; unknown columns are reported untyped.
CLIENT_STATISTICS_TYPES = {
    "TOTAL_CONNECTIONS": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc("total_connections", "The number of connections created for this client."),
    ),
    "CONCURRENT_CONNECTIONS": _ColumnMetric(
        ValueType.GAUGE,
        _client_desc("concurrent_connections", "The number of concurrent connections for this client."),
    ),
    "CONNECTED_TIME": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc(
            "connected_time_seconds_total",
            "The cumulative number of seconds elapsed while there were connections from this client.",
        ),
    ),
    "BUSY_TIME": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc(
            "busy_seconds_total",
            "The cumulative number of seconds there was activity on connections from this client.",
        ),
    ),
    "CPU_TIME": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc(
            "cpu_time_seconds_total",
            "The cumulative CPU time elapsed, in seconds, while servicing this client's connections.",
        ),
    ),
    "BYTES_RECEIVED": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc("bytes_received_total", "The number of bytes received from this client’s connections."),
    ),
    "BYTES_SENT": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc("bytes_sent_total", "The number of bytes sent to this client’s connections."),
    ),
    "BINLOG_BYTES_WRITTEN": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc(
            "binlog_bytes_written_total",
            "The number of bytes written to the binary log from this client’s connections.",
        ),
    ),
    "ROWS_READ": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc("rows_read_total", "The number of rows read by this client’s connections."),
    ),
    "ROWS_SENT": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc("rows_sent_total", "The number of rows sent by this client’s connections."),
    ),
    "ROWS_DELETED": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc("rows_deleted_total", "The number of rows deleted by this client’s connections."),
    ),
    "ROWS_INSERTED": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc("rows_inserted_total", "The number of rows inserted by this client’s connections."),
    ),
    "ROWS_FETCHED": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc("rows_fetched_total", "The number of rows fetched by this client’s connections."),
    ),
    "ROWS_UPDATED": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc("rows_updated_total", "The number of rows updated by this client’s connections."),
    ),
    "TABLE_ROWS_READ": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc(
            "table_rows_read_total",
            "The number of rows read from tables by this client’s connections. (It may be different from ROWS_FETCHED.)",
        ),
    ),
    "SELECT_COMMANDS": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc(
            "select_commands_total",
            "The number of SELECT commands executed from this client’s connections.",
        ),
    ),
    "UPDATE_COMMANDS": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc(
            "update_commands_total",
            "The number of UPDATE commands executed from this client’s connections.",
        ),
    ),
    "OTHER_COMMANDS": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc(
            "other_commands_total",
            "The number of other commands executed from this client’s connections.",
        ),
    ),
    "COMMIT_TRANSACTIONS": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc(
            "commit_transactions_total",
            "The number of COMMIT commands issued by this client’s connections.",
        ),
    ),
    "ROLLBACK_TRANSACTIONS": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc(
            "rollback_transactions_total",
            "The number of ROLLBACK commands issued by this client’s connections.",
        ),
    ),
    "DENIED_CONNECTIONS": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc("denied_connections_total", "The number of connections denied to this client."),
    ),
    "LOST_CONNECTIONS": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc(
            "lost_connections_total",
            "The number of this client’s connections that were terminated uncleanly.",
        ),
    ),
    "ACCESS_DENIED": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc(
            "access_denied_total",
            "The number of times this client’s connections issued commands that were denied.",
        ),
    ),
    "EMPTY_QUERIES": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc(
            "empty_queries_total",
            "The number of times this client’s connections sent empty queries to the server.",
        ),
    ),
    "TOTAL_SSL_CONNECTIONS": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc(
            "total_ssl_connections_total",
            "The number of times this client’s connections connected using SSL to the server.",
        ),
    ),
    "MAX_STATEMENT_TIME_EXCEEDED": _ColumnMetric(
        ValueType.COUNTER,
        _client_desc(
            "max_statement_time_exceeded_total",
            "The number of times a statement was aborted, because it was executed longer than its MAX_STATEMENT_TIME threshold.",
        ),
    ),
}


def _column_metric(column: str) -> _ColumnMetric:
    known = CLIENT_STATISTICS_TYPES.get(column)
    if known is not None:
        return known
    return _ColumnMetric(
        ValueType.UNTYPED,
        _client_desc(column.lower(), f"Unsupported metric from column {column}"),
    )


class ScrapeClientStat(Scraper):
    """Collects from information_schema.client_statistics."""

    name = "info_schema.clientstats"
    help = "If running with userstat=1, set to true to collect client statistics"
    version = 5.5

    def scrape(
        self, instance: Instance, logger: Optional[logging.Logger] = None
    ) -> Iterator[Metric]:
        logger = logger or _LOGGER
        try:
            var_name, var_value = instance.query_row(USERSTAT_CHECK_QUERY)
            var_name = as_text(var_name)
            var_value = as_text(var_value)
        except Exception:
            logger.debug("Detailed client stats are not available.")
            return
        if var_value == "OFF":
            logger.debug("MySQL variable is OFF. var=%s", var_name)
            return

        result = instance.query(CLIENT_STAT_QUERY)
        # The first column names the client; every other column is numeric.
        metric_columns = [_column_metric(column) for column in result.columns[1:]]
        for row in result.rows:
            if len(row) != len(result.columns):
                raise ValueError(
                    f"expected {len(result.columns)} columns, got {len(row)}"
                )
            client = as_text(row[0])
            values = [as_float(value) for value in row[1:]]
            for column_metric, value in zip(metric_columns, values):
                yield Metric(column_metric.desc, column_metric.value_type, value, (client,))