# mysqlmon

mysqlmon reads status data from a MySQL or MariaDB server and returns it as metrics
in the Prometheus data model. Each metric has a fully qualified name, a help text, a
value type and labels.

The package has no runtime dependencies. You supply the database connection, which
can be any DB-API connection object.

## Installation

```
pip install mysqlmon
```

To run the test suite:

```
pip install "mysqlmon[test]"
pytest
```

## Concepts

- `mysqlmon.metrics` defines the following:
  - `Desc` describes a metric family. It holds the fully qualified name, the help
    text and the label names, and it checks that the names are valid.
  - `Metric` is one sample of a `Desc`. It holds a `ValueType` (`GAUGE`, `COUNTER`
    or `UNTYPED`), a float value and the label values. `Metric.labels()` returns the
    labels as a dict.
  - `build_fq_name(namespace, subsystem, name)` joins the non-empty parts with
    underscores. For example, it builds `mysql_global_status_uptime`.
- `mysqlmon.base` defines the following:
  - `Instance` wraps a DB-API connection together with the server's `Flavor`
    (`MYSQL` or `MARIADB`) and its version as a `(major, minor, patch)` tuple.
    - `query(sql)` returns the column names and every row.
    - `query_row(sql)` returns the first row, or raises `NoRowsError` when there is
      no row.
    - The instance is a context manager that closes the connection on exit.
  - `Scraper` is the abstract interface. Each scraper has a `name`, a `help` text and
    the lowest server `version` it runs on. Its `scrape(instance, logger)` method is a
    generator that yields `Metric` objects and raises when it fails.
  - The shared helpers are `parse_status`, `parse_privilege`, `new_desc` and
    `valid_prometheus_name`.
    - `parse_status` understands the following values and returns `None` for a value
      with no numeric meaning:
      - words such as `ON`, `OFF`, `Yes` and `Primary`
      - timestamps
      - binlog-style file names
      - plain numbers

## Scrapers

| Class | Reads |
|---|---|
| `binlog.ScrapeBinlogSize` | `SHOW BINARY LOGS`; yields nothing when `@@log_bin` is off |
| `engine_innodb.ScrapeEngineInnodbStatus` | query and read-view counts from `SHOW ENGINE INNODB STATUS` |
| `engine_tokudb.ScrapeEngineTokudbStatus` | `SHOW ENGINE TOKUDB STATUS` |
| `global_status.ScrapeGlobalStatus` | `SHOW GLOBAL STATUS`, including the Galera status and the latency breakdown |
| `global_variables.ScrapeGlobalVariables` | `SHOW GLOBAL VARIABLES`, version info, Galera gcache size and transaction isolation |
| `heartbeat.ScrapeHeartbeat` | a pt-heartbeat style table |
| `info_schema_auto_increment.ScrapeAutoIncrementColumns` | auto_increment column values and their maximums |
| `info_schema_clientstats.ScrapeClientStat` | `information_schema.client_statistics`, when `userstat` is on |
| `info_schema_innodb_cmpmem.ScrapeInnodbCmpMem` | `information_schema.innodb_cmpmem` |
| `info_schema_innodb_metrics.ScrapeInnodbMetrics` | `information_schema.innodb_metrics` |
| `info_schema_innodb_sys_tablespaces.ScrapeInfoSchemaInnodbTablespaces` | InnoDB tablespace sizes; leaves out `SPACE_TYPE` on MariaDB 10.5 and later |

`ScrapeHeartbeat(database="heartbeat", table="heartbeat", utc=False)` reads the table
you name. With `utc=True` it compares against `UTC_TIMESTAMP(6)` instead of `NOW(6)`.

The module `engine_tokudb` has a helper, `sanitize_tokudb_metric`, that turns TokuDB
status keys into metric names. The module `global_variables` has a helper,
`parse_wsrep_provider_options`, that extracts `gcache.size` in bytes.

## Running a single scraper

```python
import logging

from mysqlmon.base import Flavor, Instance
from mysqlmon.global_status import ScrapeGlobalStatus

connection = ...  # any DB-API connection to the server
instance = Instance(connection, Flavor.MYSQL, (8, 0, 36))
for metric in ScrapeGlobalStatus().scrape(instance, logging.getLogger("mysqlmon")):
    print(metric.name, metric.labels(), metric.value)
```

## Running a set of scrapers

`mysqlmon.exporter.Exporter` runs a list of scrapers against one DSN. You pass a
`connect` callable that opens an `Instance` for a DSN string.

`build_dsn` appends `lock_wait_timeout` to the DSN (2 seconds by default). It also
appends a `log_slow_filter` session setting when you ask for it.

```python
from mysqlmon.exporter import Exporter
from mysqlmon.global_status import ScrapeGlobalStatus

exporter = Exporter(
    "user:password@tcp(localhost:3306)/",
    [ScrapeGlobalStatus()],
    connect=my_connect,
    lock_wait_timeout=2,
    log_slow_filter=False,
)
for metric in exporter.collect():
    print(metric.name, metric.labels(), metric.value)
```

`collect()` runs the scrapers one after another and returns a list that contains the
following:

- `mysql_exporter_collector_duration_seconds` for the connection step
- `mysql_exporter_collector_success` and `mysql_exporter_collector_duration_seconds`
  for each scraper, labelled `collect.<name>`
- `mysql_up` as the last metric

How failures are handled:

- If the connection or the ping fails, `mysql_up` is 0.
- If a scraper raises, the error is logged and that scraper's success metric is 0.
- A scraper is skipped when the server's major.minor version is lower than the
  version the scraper requires.

`describe()` lists the descriptors of these exporter metrics. `target_from_dsn`
extracts the server address from a DSN and is used in error messages.

## What it does not do

- It serves no HTTP `/metrics` endpoint.
- It provides no command-line program.
- It writes no text exposition format. The metrics come back as Python objects for
  you to expose.
- It contains no database driver. The `connect` callable is yours to write.
- There is no scraper for `information_schema.innodb_cmp`.