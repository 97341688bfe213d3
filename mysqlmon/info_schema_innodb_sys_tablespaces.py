"""Tablespace sizes from information_schema.innodb_sys_tablespaces."""

from __future__ import annotations

import logging
from typing import Any, Iterator, Optional

from .base import (
    INFORMATION_SCHEMA,
    NAMESPACE,
    Flavor,
    Instance,
    Scraper,
    as_int,
    as_text,
)
from .metrics import Desc, Metric, ValueType, build_fq_name

INNODB_TABLESPACES_TABLENAME_QUERY = """
	SELECT
	    table_name
	  FROM information_schema.tables
	  WHERE table_name = 'INNODB_SYS_TABLESPACES'
	    OR table_name = 'INNODB_TABLESPACES'
	"""

INNODB_TABLESPACES_QUERY_MYSQL = """
	SELECT
	    SPACE,
	    NAME,
	    ifnull((SELECT column_name
			FROM information_schema.COLUMNS
			WHERE TABLE_SCHEMA = 'information_schema'
			  AND TABLE_NAME = '{table}'
			  AND COLUMN_NAME = 'FILE_FORMAT' LIMIT 1), 'NONE') as FILE_FORMAT,
	    ifnull(ROW_FORMAT, 'NONE') as ROW_FORMAT,
	    ifnull(SPACE_TYPE, 'NONE') as SPACE_TYPE,
	    FILE_SIZE,
	    ALLOCATED_SIZE
	  FROM information_schema.`{table}`"""

# MariaDB 10.5 dropped SPACE_TYPE.
INNODB_TABLESPACES_QUERY_MARIADB = """
	SELECT
	    SPACE,
	    NAME,
	    ifnull((SELECT column_name
			FROM information_schema.COLUMNS
			WHERE TABLE_SCHEMA = 'information_schema'
			  AND TABLE_NAME = '{table}'
			  AND COLUMN_NAME = 'FILE_FORMAT' LIMIT 1), 'NONE') as FILE_FORMAT,
	    ifnull(ROW_FORMAT, 'NONE') as ROW_FORMAT,
	    FILE_SIZE,
	    ALLOCATED_SIZE
	  FROM information_schema.`{table}`"""

_TABLESPACE_TABLES = ("INNODB_SYS_TABLESPACES", "INNODB_TABLESPACES")
_MARIADB_WITHOUT_SPACE_TYPE = (10, 5, 0)

TABLESPACE_INFO_DESC = Desc(
    build_fq_name(NAMESPACE, INFORMATION_SCHEMA, "innodb_tablespace_space_info"),
    "The Tablespace information and Space ID.",
    ("tablespace_name", "file_format", "row_format", "space_type"),
)
TABLESPACE_FILE_SIZE_DESC = Desc(
    build_fq_name(NAMESPACE, INFORMATION_SCHEMA, "innodb_tablespace_file_size_bytes"),
    "The apparent size of the file, which represents the maximum size of the file, uncompressed.",
    ("tablespace_name",),
)
TABLESPACE_ALLOCATED_SIZE_DESC = Desc(
    build_fq_name(NAMESPACE, INFORMATION_SCHEMA, "innodb_tablespace_allocated_size_bytes"),
    "The actual size of the file, which is the amount of space allocated on disk.",
    ("tablespace_name",),
)


def _as_unsigned(value: Any, bits: int) -> int:
    number = as_int(value)
    if not 0 <= number < 1 << bits:
        raise ValueError(f"{number} does not fit in an unsigned {bits}-bit integer")
    return number


def _lacks_space_type(instance: Instance) -> bool:
    return (
        instance.flavor is Flavor.MARIADB
        and tuple(instance.version) >= _MARIADB_WITHOUT_SPACE_TYPE
    )


class ScrapeInfoSchemaInnodbTablespaces(Scraper):
    """Collects from information_schema.innodb_sys_tablespaces."""

    name = INFORMATION_SCHEMA + ".innodb_tablespaces"
    help = "Collect metrics from information_schema.innodb_sys_tablespaces"
    version = 5.7

    def scrape(
        self, instance: Instance, logger: Optional[logging.Logger] = None
    ) -> Iterator[Metric]:
        (table_name,) = instance.query_row(INNODB_TABLESPACES_TABLENAME_QUERY)
        table_name = as_text(table_name)
        if table_name not in _TABLESPACE_TABLES:
            raise LookupError(
                "Couldn't find INNODB_SYS_TABLESPACES or INNODB_TABLESPACES in information_schema."
            )

        without_space_type = _lacks_space_type(instance)
        template = (
            INNODB_TABLESPACES_QUERY_MARIADB
            if without_space_type
            else INNODB_TABLESPACES_QUERY_MYSQL
        )
        result = instance.query(template.format(table=table_name))

        for row in result.rows:
            if without_space_type:
                space, name, file_format, row_format, file_size, allocated_size = row
                space_type = ""
            else:
                space, name, file_format, row_format, space_type, file_size, allocated_size = row
                space_type = as_text(space_type)
            space_id = _as_unsigned(space, 32)
            name = as_text(name)
            file_format = as_text(file_format)
            row_format = as_text(row_format)
            file_bytes = _as_unsigned(file_size, 64)
            allocated_bytes = _as_unsigned(allocated_size, 64)

            yield Metric(
                TABLESPACE_INFO_DESC,
                ValueType.GAUGE,
                float(space_id),
                (name, file_format, row_format, space_type),
            )
            yield Metric(TABLESPACE_FILE_SIZE_DESC, ValueType.GAUGE, float(file_bytes), (name,))
            yield Metric(
                TABLESPACE_ALLOCATED_SIZE_DESC, ValueType.GAUGE, float(allocated_bytes), (name,)
            )