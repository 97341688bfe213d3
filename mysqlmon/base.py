"""Shared pieces for scrapers: server connection, value parsing and naming."""

from __future__ import annotations

import abc
import enum
import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, ClassVar, Iterator, NamedTuple, Optional

from .metrics import Desc, Metric, build_fq_name

NAMESPACE = "mysql"
INFORMATION_SCHEMA = "info_schema"
PICO_SECONDS = 1e12
USERSTAT_CHECK_QUERY = """SHOW GLOBAL VARIABLES WHERE Variable_Name='userstat'
		OR Variable_Name='userstat_running'"""

_LOG_RE = re.compile(r".+\.(\d+)\Z", re.ASCII)
_NAME_RE = re.compile(r"[^a-zA-Z0-9_]")
_DECIMAL_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)
_HEX_RE = re.compile(
    r"[+-]?0[xX](?:[0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)[pP][+-]?\d+", re.ASCII
)
_INT_RE = re.compile(r"[+-]?\d+", re.ASCII)
_INFINITIES = {"inf", "+inf", "-inf", "infinity", "+infinity", "-infinity"}

_CTIME_RE = re.compile(
    r"(?P<month>[A-Za-z]{3}) {1,2}(?P<day>\d{1,2}) "
    r"(?P<hour>\d{1,2}):(?P<minute>\d{2}):(?P<second>\d{2})(?:[.,]\d+)? "
    r"(?P<year>\d{4}) (?:[A-Z]{3}|[A-Z]{3,4}T|ChST|MeST)",
    re.ASCII,
)
_DATETIME_RE = re.compile(
    r"(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2}) "
    r"(?P<hour>\d{1,2}):(?P<minute>\d{2}):(?P<second>\d{2})(?:[.,]\d+)?",
    re.ASCII,
)
_MONTHS = {
    name: number
    for number, name in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"),
        start=1,
    )
}
_STATUS_WORDS = {
    "yes": 1.0,
    "on": 1.0,
    "no": 0.0,
    "off": 0.0,
    "disabled": 0.0,
    # Slave_IO_Running reports "Connecting" while it is not running.
    "connecting": 0.0,
    # wsrep_cluster_status.
    "primary": 1.0,
    "non-primary": 0.0,
    "disconnected": 0.0,
}


class NoRowsError(LookupError):
    """A query that must return a row returned none."""


class Flavor(enum.Enum):
    """Server distribution."""

    MYSQL = "mysql"
    MARIADB = "mariadb"


class Rows(NamedTuple):
    """Column names and rows returned by a query."""

    columns: list[str]
    rows: list[tuple]


@dataclass
class Instance:
    """A connection to one server, with what is known about it."""

    connection: Any
    flavor: Flavor = Flavor.MYSQL
    version: tuple[int, int, int] = (0, 0, 0)

    @property
    def version_major_minor(self) -> float:
        """Major and minor version as a number, such as 5.7."""
        return float(f"{self.version[0]}.{self.version[1]}")

    def query(self, sql: str) -> Rows:
        """Run a statement and return its columns and all its rows."""
        cursor = self.connection.cursor()
        try:
            cursor.execute(sql)
            description = cursor.description
            if not description:
                return Rows([], [])
            columns = [column[0] for column in description]
            return Rows(columns, [tuple(row) for row in cursor.fetchall()])
        finally:
            cursor.close()

    def query_row(self, sql: str) -> tuple:
        """Run a statement and return its first row."""
        result = self.query(sql)
        if not result.rows:
            raise NoRowsError(f"no rows returned by {sql!r}")
        return result.rows[0]

    def close(self) -> None:
        self.connection.close()

    def __enter__(self) -> "Instance":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class Scraper(abc.ABC):
    """One source of metrics on a server."""

    name: ClassVar[str]
    help: ClassVar[str]
    version: ClassVar[float]

    @abc.abstractmethod
    def scrape(
        self, instance: Instance, logger: Optional[logging.Logger] = None
    ) -> Iterator[Metric]:
        """Yield metrics read from the server; raise on failure."""


def parse_float(text: str) -> Optional[float]:
    """Parse a number strictly; None when it is malformed or out of range."""
    if _DECIMAL_RE.fullmatch(text):
        value = float(text)
    elif text.lower() in _INFINITIES:
        return float(text.lower())
    elif text.lower() == "nan":
        return math.nan
    elif _HEX_RE.fullmatch(text):
        value = float.fromhex(text)
    else:
        return None
    return None if math.isinf(value) else value


def _raw_text(data: Any) -> str:
    if data is None:
        return ""
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data).decode("utf-8", "replace")
    return data if isinstance(data, str) else str(data)


def as_text(value: Any) -> str:
    """Convert a column value to text; NULL is an error."""
    if value is None:
        raise ValueError("cannot convert NULL to text")
    return _raw_text(value)


def as_float(value: Any) -> float:
    """Convert a column value to a float; NULL or non-numbers are an error."""
    if value is None:
        raise ValueError("cannot convert NULL to a number")
    if isinstance(value, (str, bytes, bytearray, memoryview)):
        text = _raw_text(value)
        result = parse_float(text)
        if result is None:
            raise ValueError(f"cannot convert {text!r} to a number")
        return result
    return float(value)


def as_int(value: Any) -> int:
    """Convert a column value to an integer; NULL or non-integers are an error."""
    if value is None:
        raise ValueError("cannot convert NULL to an integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"cannot convert {value!r} to an integer")
        return int(value)
    if isinstance(value, (str, bytes, bytearray, memoryview)):
        text = _raw_text(value)
        if not _INT_RE.fullmatch(text):
            raise ValueError(f"cannot convert {text!r} to an integer")
        return int(text)
    return int(value)


def _timestamp(year: int, month: int, day: int, hour: int, minute: int, second: int) -> Optional[float]:
    try:
        moment = datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
    except ValueError:
        return None
    return moment.timestamp()


def _parse_ctime(text: str) -> Optional[float]:
    # Zone abbreviations carry no offset; they are read as UTC.
    match = _CTIME_RE.fullmatch(text)
    if not match:
        return None
    month = _MONTHS.get(match["month"].lower())
    if month is None:
        return None
    return _timestamp(
        int(match["year"]), month, int(match["day"]),
        int(match["hour"]), int(match["minute"]), int(match["second"]),
    )


def _parse_datetime(text: str) -> Optional[float]:
    match = _DATETIME_RE.fullmatch(text)
    if not match:
        return None
    return _timestamp(
        int(match["year"]), int(match["month"]), int(match["day"]),
        int(match["hour"]), int(match["minute"]), int(match["second"]),
    )


def parse_status(data: Any) -> Optional[float]:
    """Turn a status or variable value into a number, or None if it has none."""
    text = _raw_text(data)
    word = _STATUS_WORDS.get(text.lower())
    if word is not None:
        return word
    for parser in (_parse_ctime, _parse_datetime):
        stamp = parser(text)
        if stamp is not None:
            return stamp
    log_match = _LOG_RE.search(text)
    if log_match:
        return parse_float(log_match.group(0))
    return parse_float(text)


def parse_privilege(data: Any) -> Optional[float]:
    """Map a privilege flag Y/N to 1/0, or None for anything else."""
    text = _raw_text(data)
    if text == "Y":
        return 1.0
    if text == "N":
        return 0.0
    return None


def new_desc(subsystem: str, name: str, help: str) -> Desc:
    """Descriptor without labels in the exporter namespace."""
    return Desc(build_fq_name(NAMESPACE, subsystem, name), help)


def valid_prometheus_name(s: str) -> str:
    """Replace characters not allowed in metric names and lower-case the result."""
    return _NAME_RE.sub("_", s).lower()