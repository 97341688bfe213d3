import pytest

from mysqlmon.base import USERSTAT_CHECK_QUERY, Instance
from mysqlmon.info_schema_clientstats import CLIENT_STAT_QUERY, ScrapeClientStat
from mysqlmon.metrics import ValueType


class FakeCursor:
    def __init__(self, connection):
        self.connection = connection
        self.description = None
        self._rows = []

    def execute(self, sql):
        self.connection.executed.append(sql)
        response = self.connection.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        columns, rows = response
        self.description = [(column,) for column in columns]
        self._rows = list(rows)

    def fetchall(self):
        return self._rows

    def close(self):
        pass


class FakeConnection:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.executed = []

    def cursor(self):
        return FakeCursor(self)

    def close(self):
        pass


COLUMNS = [
    "CLIENT", "TOTAL_CONNECTIONS", "CONCURRENT_CONNECTIONS", "CONNECTED_TIME",
    "BUSY_TIME", "CPU_TIME", "BYTES_RECEIVED", "BYTES_SENT", "BINLOG_BYTES_WRITTEN",
    "ROWS_READ", "ROWS_SENT", "ROWS_DELETED", "ROWS_INSERTED", "ROWS_UPDATED",
    "SELECT_COMMANDS", "UPDATE_COMMANDS", "OTHER_COMMANDS", "COMMIT_TRANSACTIONS",
    "ROLLBACK_TRANSACTIONS", "DENIED_CONNECTIONS", "LOST_CONNECTIONS",
    "ACCESS_DENIED", "EMPTY_QUERIES",
]
ROW = (
    "localhost", 1002, 0, 127027, 286, 245, 2565104853.0, 21090856, 2380108042.0,
    767691, 1764, 8778, 1210741, 0, 1764, 1214416, 293, 2430888, 0, 0, 0, 0, 0,
)
USERSTAT_ON = (["Variable_name", "Value"], [("userstat", "ON")])


def _summary(metrics):
    return [(m.labels(), m.value, m.value_type) for m in metrics]


def test_scrape_client_stat():
    connection = FakeConnection(USERSTAT_ON, (COLUMNS, [ROW]))
    metrics = list(ScrapeClientStat().scrape(Instance(connection)))

    counter, gauge = ValueType.COUNTER, ValueType.GAUGE
    client = {"client": "localhost"}
    expected = [
        (client, 1002, counter),
        (client, 0, gauge),
        (client, 127027, counter),
        (client, 286, counter),
        (client, 245, counter),
        (client, 2565104853.0, counter),
        (client, 21090856, counter),
        (client, 2380108042.0, counter),
        (client, 767691, counter),
        (client, 1764, counter),
        (client, 8778, counter),
        (client, 1210741, counter),
        (client, 0, counter),
        (client, 1764, counter),
        (client, 1214416, counter),
        (client, 293, counter),
        (client, 2430888, counter),
        (client, 0, counter),
        (client, 0, counter),
        (client, 0, counter),
        (client, 0, counter),
        (client, 0, counter),
    ]
    assert _summary(metrics) == expected
    assert connection.executed == [USERSTAT_CHECK_QUERY, CLIENT_STAT_QUERY]
    assert connection.responses == []


def test_metric_names_follow_columns():
    connection = FakeConnection(USERSTAT_ON, (COLUMNS, [ROW]))
    metrics = list(ScrapeClientStat().scrape(Instance(connection)))
    assert metrics[0].name == "mysql_info_schema_client_statistics_total_connections"
    assert metrics[1].name == "mysql_info_schema_client_statistics_concurrent_connections"
    assert metrics[2].name == "mysql_info_schema_client_statistics_connected_time_seconds_total"


def test_unknown_column_is_untyped():
    connection = FakeConnection(USERSTAT_ON, (["CLIENT", "Foo_Bar"], [("db1", "7")]))
    (metric,) = ScrapeClientStat().scrape(Instance(connection))
    assert metric.name == "mysql_info_schema_client_statistics_foo_bar"
    assert metric.value_type is ValueType.UNTYPED
    assert metric.value == 7.0
    assert metric.labels() == {"client": "db1"}
    assert metric.desc.help == "Unsupported metric from column Foo_Bar"


def test_userstat_off_yields_nothing():
    connection = FakeConnection((["Variable_name", "Value"], [("userstat", "OFF")]))
    metrics = list(ScrapeClientStat().scrape(Instance(connection)))
    assert metrics == []
    assert connection.executed == [USERSTAT_CHECK_QUERY]


def test_userstat_unavailable_yields_nothing():
    connection = FakeConnection(RuntimeError("unknown variable"))
    metrics = list(ScrapeClientStat().scrape(Instance(connection)))
    assert metrics == []
    assert connection.executed == [USERSTAT_CHECK_QUERY]


def test_userstat_without_rows_yields_nothing():
    connection = FakeConnection((["Variable_name", "Value"], []))
    assert list(ScrapeClientStat().scrape(Instance(connection))) == []


def test_statistics_query_failure_raises():
    connection = FakeConnection(USERSTAT_ON, RuntimeError("table missing"))
    with pytest.raises(RuntimeError, match="table missing"):
        list(ScrapeClientStat().scrape(Instance(connection)))


def test_non_numeric_value_raises():
    connection = FakeConnection(USERSTAT_ON, (["CLIENT", "ROWS_READ"], [("db1", "many")]))
    with pytest.raises(ValueError):
        list(ScrapeClientStat().scrape(Instance(connection)))