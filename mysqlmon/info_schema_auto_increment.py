"""Auto-increment column values and limits from information_schema."""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from .base import INFORMATION_SCHEMA, NAMESPACE, Instance, Scraper, as_float, as_text
from .metrics import Desc, Metric, ValueType, build_fq_name

# Number of value bits of each signed integer type; unsigned types get one more.
_INTEGER_BITS = {
    "tinyint": 7,
    "smallint": 15,
    "mediumint": 23,
    "int": 31,
    "bigint": 63,
}

_BITS_CASE = " ".join(f"WHEN '{kind}' THEN {bits}" for kind, bits in _INTEGER_BITS.items())

INFO_SCHEMA_AUTO_INCREMENT_QUERY = (
    "SELECT c.table_schema, c.table_name, column_name, auto_increment, "
    f"pow(2, CASE data_type {_BITS_CASE} END + (column_type LIKE '% unsigned')) - 1 AS max_int "
    "FROM information_schema.columns c "
    "STRAIGHT_JOIN information_schema.tables t "
    "ON (BINARY c.table_schema = t.table_schema AND BINARY c.table_name = t.table_name) "
    "WHERE c.extra = 'auto_increment' AND t.auto_increment IS NOT NULL"
)

AUTO_INCREMENT_DESC = Desc(
    build_fq_name(NAMESPACE, INFORMATION_SCHEMA, "auto_increment_column"),
    "The current value of an auto_increment column from information_schema.",
    ("schema", "table", "column"),
)
AUTO_INCREMENT_MAX_DESC = Desc(
    build_fq_name(NAMESPACE, INFORMATION_SCHEMA, "auto_increment_column_max"),
    "The max value of an auto_increment column from information_schema.",
    ("schema", "table", "column"),
)


class ScrapeAutoIncrementColumns(Scraper):
    """Collects auto_increment columns and their maximum values."""

    name = "auto_increment.columns"
    help = "Collect auto_increment columns and max values from information_schema"
    version = 5.1

    def scrape(
        self, instance: Instance, logger: Optional[logging.Logger] = None
    ) -> Iterator[Metric]:
        result = instance.query(INFO_SCHEMA_AUTO_INCREMENT_QUERY)
        for schema, table, column, value, maximum in result.rows:
            labels = (as_text(schema), as_text(table), as_text(column))
            current = as_float(value)
            limit = as_float(maximum)
            yield Metric(AUTO_INCREMENT_DESC, ValueType.GAUGE, current, labels)
            yield Metric(AUTO_INCREMENT_MAX_DESC, ValueType.GAUGE, limit, labels)