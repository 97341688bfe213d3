"""Binary log sizes from SHOW BINARY LOGS."""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from .base import NAMESPACE, Instance, Scraper, as_int, as_text, parse_float
from .metrics import Desc, Metric, ValueType, build_fq_name

SUBSYSTEM = "binlog"
LOGBIN_QUERY = "SELECT @@log_bin"
BINLOG_QUERY = "SHOW BINARY LOGS"

BINLOG_SIZE_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "size_bytes"),
    "Combined size of all registered binlog files.",
)
BINLOG_FILES_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "files"),
    "Number of registered binlog files.",
)
BINLOG_FILE_NUMBER_DESC = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "file_number"),
    "The last binlog file number.",
)


class ScrapeBinlogSize(Scraper):
    """Collects from SHOW BINARY LOGS."""

    name = "binlog_size"
    help = "Collect the current size of all registered binlog files"
    version = 5.1

    def scrape(
        self, instance: Instance, logger: Optional[logging.Logger] = None
    ) -> Iterator[Metric]:
        (log_bin,) = instance.query_row(LOGBIN_QUERY)
        # SHOW BINARY LOGS fails on the server when log_bin is off.
        if as_int(log_bin) == 0:
            return

        result = instance.query(BINLOG_QUERY)
        column_count = len(result.columns)
        size = 0
        count = 0
        filename = ""
        for row in result.rows:
            if column_count not in (2, 3):
                raise ValueError(f"invalid number of columns: {column_count}")
            try:
                filename = as_text(row[0])
                filesize = as_int(row[1])
                if column_count == 3:
                    as_text(row[2])
            except (ValueError, IndexError):
                return
            if filesize < 0:
                return
            size += filesize
            count += 1

        yield Metric(BINLOG_SIZE_DESC, ValueType.GAUGE, float(size))
        yield Metric(BINLOG_FILES_DESC, ValueType.GAUGE, float(count))
        # The last row holds the newest binlog file.
        parts = filename.split(".")
        if len(parts) < 2:
            raise ValueError(f"binlog file name {filename!r} has no number")
        number = parse_float(parts[1])
        yield Metric(
            BINLOG_FILE_NUMBER_DESC,
            ValueType.GAUGE,
            number if number is not None else 0.0,
        )