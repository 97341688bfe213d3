from datetime import datetime, timezone

import pytest

from mysqlmon.base import (
    Flavor,
    Instance,
    NoRowsError,
    Scraper,
    as_float,
    as_int,
    as_text,
    new_desc,
    parse_privilege,
    parse_status,
    valid_prometheus_name,
)


class FakeCursor:
    def __init__(self, results, executed):
        self._results = results
        self._executed = executed
        self.description = None
        self._rows = []

    def execute(self, sql):
        self._executed.append(sql)
        columns, rows = self._results[sql]
        self.description = [(name, None, None, None, None, None, None) for name in columns]
        self._rows = rows

    def fetchall(self):
        return list(self._rows)

    def close(self):
        pass


class FakeConnection:
    def __init__(self, results):
        self.results = dict(results)
        self.executed = []
        self.closed = False

    def cursor(self):
        return FakeCursor(self.results, self.executed)

    def close(self):
        self.closed = True


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("yes", 1.0),
        ("ON", 1.0),
        (b"on", 1.0),
        ("no", 0.0),
        ("OFF", 0.0),
        ("Disabled", 0.0),
        ("Connecting", 0.0),
        ("Primary", 1.0),
        ("non-Primary", 0.0),
        ("Disconnected", 0.0),
    ],
)
def test_parse_status_words(raw, expected):
    assert parse_status(raw) == expected


def test_parse_status_numbers():
    assert parse_status("28800") == 28800.0
    assert parse_status(b"9115.904484") == 9115.904484
    assert parse_status("1.5") == 1.5


@pytest.mark.parametrize("raw", ["", None, " 1", "1_000", "1e400", "Linux", "/tmp"])
def test_parse_status_unparsable(raw):
    assert parse_status(raw) is None


def test_parse_status_log_name_is_not_a_number():
    assert parse_status("mysql-bin.000123") is None


def test_parse_status_datetime_round_trip():
    moment = datetime(2016, 9, 14, 19, 4, 38, tzinfo=timezone.utc)
    assert parse_status(moment.strftime("%Y-%m-%d %H:%M:%S")) == moment.timestamp()


def test_parse_status_ctime_matches_datetime():
    assert parse_status("Sep 14 19:04:38 2016 UTC") == parse_status("2016-09-14 19:04:38")
    assert parse_status("Jan  1 00:00:00 1970 UTC") == parse_status("1970-01-01 00:00:00")


def test_parse_status_ctime_without_zone_is_skipped():
    assert parse_status("Thu Jan  1 00:00:00 1970") is None


def test_parse_status_invalid_date_is_skipped():
    assert parse_status("2016-02-30 00:00:00") is None


def test_parse_privilege():
    assert parse_privilege("Y") == 1.0
    assert parse_privilege(b"N") == 0.0
    assert parse_privilege("y") is None


def test_valid_prometheus_name():
    name = valid_prometheus_name("validate_password.dictionary_file_words_count")
    assert name == "validate_password_dictionary_file_words_count"


def test_valid_prometheus_name_lowercases_and_keeps_valid_chars():
    name = valid_prometheus_name("Com-Alter DB")
    assert name == name.lower()
    assert len(name) == len("Com-Alter DB")


def test_new_desc():
    desc = new_desc("binlog", "files", "Number of registered binlog files.")
    assert desc.fq_name == "mysql_binlog_files"
    assert desc.variable_labels == ()


def test_instance_query_returns_columns_and_rows():
    connection = FakeConnection({"SHOW X": (["a", "b"], [("1", 2), ("3", 4)])})
    instance = Instance(connection)
    result = instance.query("SHOW X")
    assert result.columns == ["a", "b"]
    assert result.rows == [("1", 2), ("3", 4)]
    assert instance.query_row("SHOW X") == ("1", 2)
    assert connection.executed == ["SHOW X", "SHOW X"]


def test_instance_query_row_without_rows():
    instance = Instance(FakeConnection({"SELECT 1": (["x"], [])}))
    with pytest.raises(NoRowsError):
        instance.query_row("SELECT 1")


def test_instance_context_manager_closes():
    connection = FakeConnection({})
    with Instance(connection, Flavor.MARIADB) as instance:
        assert instance.flavor is Flavor.MARIADB
    assert connection.closed is True


def test_version_major_minor():
    assert Instance(FakeConnection({}), version=(5, 7, 21)).version_major_minor == 5.7


def test_conversions():
    assert as_text(b"abc") == "abc"
    assert as_float("1813") == 1813.0
    assert as_int("573009") == 573009
    assert as_int(7.0) == 7


@pytest.mark.parametrize("func", [as_text, as_float, as_int])
def test_conversions_reject_null(func):
    with pytest.raises(ValueError):
        func(None)


def test_as_int_rejects_fraction():
    with pytest.raises(ValueError):
        as_int("1.5")


def test_as_float_rejects_text():
    with pytest.raises(ValueError):
        as_float("Linux")


def test_scraper_is_abstract():
    with pytest.raises(TypeError):
        Scraper()