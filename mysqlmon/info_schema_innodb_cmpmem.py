"""Compressed buffer pool statistics from information_schema.innodb_cmpmem."""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from .base import INFORMATION_SCHEMA, NAMESPACE, Instance, Scraper, as_float, as_text
from .metrics import Desc, Metric, ValueType, build_fq_name

INNODB_CMPMEM_QUERY = """
                SELECT
                  page_size, buffer_pool_instance, pages_used, pages_free, relocation_ops, relocation_time
                  FROM information_schema.innodb_cmpmem
                """


def _cmpmem_desc(name: str, help_text: str) -> Desc:
    return Desc(
        build_fq_name(NAMESPACE, INFORMATION_SCHEMA, name),
        help_text,
        ("page_size", "buffer_pool"),
    )


PAGES_USED_DESC = _cmpmem_desc(
    "innodb_cmpmem_pages_used_total",
    "Number of blocks of the size PAGE_SIZE that are currently in use.",
)
PAGES_FREE_DESC = _cmpmem_desc(
    "innodb_cmpmem_pages_free_total",
    "Number of blocks of the size PAGE_SIZE that are currently available for allocation.",
)
RELOCATION_OPS_DESC = _cmpmem_desc(
    "innodb_cmpmem_relocation_ops_total",
    "Number of times a block of the size PAGE_SIZE has been relocated.",
)
RELOCATION_TIME_DESC = _cmpmem_desc(
    "innodb_cmpmem_relocation_time_seconds_total",
    "Total time in seconds spent in relocating blocks.",
)


class ScrapeInnodbCmpMem(Scraper):
    """Collects from information_schema.innodb_cmpmem."""

    name = INFORMATION_SCHEMA + ".innodb_cmpmem"
    help = "Collect metrics from information_schema.innodb_cmpmem"
    version = 5.5

    def scrape(
        self, instance: Instance, logger: Optional[logging.Logger] = None
    ) -> Iterator[Metric]:
        result = instance.query(INNODB_CMPMEM_QUERY)
        for row in result.rows:
            if len(row) != 6:
                raise ValueError(f"expected 6 columns, got {len(row)}")
            page_size = as_text(row[0])
            buffer_pool = as_text(row[1])
            pages_used, pages_free, relocation_ops, relocation_time = (
                as_float(value) for value in row[2:]
            )
            labels = (page_size, buffer_pool)
            yield Metric(PAGES_USED_DESC, ValueType.COUNTER, pages_used, labels)
            yield Metric(PAGES_FREE_DESC, ValueType.COUNTER, pages_free, labels)
            yield Metric(RELOCATION_OPS_DESC, ValueType.COUNTER, relocation_ops, labels)
            # The server reports relocation time in milliseconds.
            yield Metric(
                RELOCATION_TIME_DESC, ValueType.COUNTER, relocation_time / 1000, labels
            )