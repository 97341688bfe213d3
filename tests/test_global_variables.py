import pytest

from mysqlmon.base import Instance
from mysqlmon.global_variables import (
    GLOBAL_VARIABLES_HELP,
    GLOBAL_VARIABLES_QUERY,
    ScrapeGlobalVariables,
    parse_wsrep_provider_options,
)
from mysqlmon.metrics import ValueType


class _Cursor:
    def __init__(self, connection):
        self._connection = connection
        self.description = None

    def execute(self, sql):
        self._connection.executed.append(sql)
        columns, rows = self._connection.results[sql]
        self.description = [(name,) for name in columns]
        self._rows = rows

    def fetchall(self):
        return list(self._rows)

    def close(self):
        pass


class _Connection:
    def __init__(self, results):
        self.results = results
        self.executed = []

    def cursor(self):
        return _Cursor(self)

    def close(self):
        pass


def _instance(rows):
    connection = _Connection({GLOBAL_VARIABLES_QUERY: (["Variable_name", "Value"], rows)})
    return Instance(connection), connection


_PROVIDER_TEMPLATE = (
    "base_dir = /var/lib/mysql/; base_host = {host}; base_port = 4567; cert.log_conflicts = no; "
    "debug = no; evs.auto_evict = 0; evs.causal_keepalive_period = PT1S; evs.debug_log_mask = 0x1; "
    "evs.delay_margin = PT1S; evs.delayed_keep_period = PT30S; evs.inactive_check_period = PT0.5S; "
    "evs.inactive_timeout = PT15S; evs.info_log_mask = 0; evs.install_timeout = PT7.5S; "
    "evs.join_retrans_period = PT1S; evs.keepalive_period = PT1S; evs.max_install_timeouts = 3; "
    "evs.send_window = 4; evs.stats_report_period = PT1M; evs.suspect_timeout = PT5S; "
    "evs.use_aggregate = true; evs.user_send_window = 2; evs.version = 0; "
    "evs.view_forget_timeout = P1D; gcache.dir = /var/lib/mysql/; gcache.keep_pages_count = 0; "
    "gcache.keep_pages_size = 0; gcache.mem_size = 0; gcache.name = /var/lib/mysql//galera.cache; "
    "gcache.page_size = 128M; gcache.size = {size}; gcomm.thread_prio = ; gcs.fc_debug = 0; "
    "gcs.fc_factor = 1.0; gcs.fc_limit = 16; gcs.fc_master_slave = no; gcs.max_packet_size = 64500; "
    "gcs.max_throttle = 0.25; gcs.recv_q_hard_limit = 9223372036854775807; "
    "gcs.recv_q_soft_limit = 0.25; gcs.sync_donor = no; gmcast.listen_addr = tcp://0.0.0.0:4567; "
    "gmcast.mcast_addr = ; gmcast.mcast_ttl = 1; gmcast.peer_timeout = PT3S; gmcast.segment = 0; "
    "gmcast.time_wait = PT5S; gmcast.version = 0; ist.recv_addr = {host}; "
    "pc.announce_timeout = PT3S; pc.checksum = false; pc.ignore_quorum = false; pc.ignore_sb = false; "
    "pc.linger = PT20S; pc.npvo = false; pc.recovery = true; pc.version = 0; pc.wait_prim = true; "
    "pc.wait_prim_timeout = P30S; pc.weight = 1; protonet.backend = asio; protonet.version = 0; "
    "repl.causal_read_timeout = PT30S; repl.commit_order = 3; repl.key_format = FLAT8; "
    "repl.max_ws_size = 2147483647; repl.proto_max = 7; socket.checksum = 2; "
    "socket.recv_buf_size = 212992;"
)
PROVIDER_M = _PROVIDER_TEMPLATE.format(host="10.91.142.82", size="128M")
PROVIDER_G = _PROVIDER_TEMPLATE.format(host="10.91.194.244", size="2G")
PROVIDER_B = "gcache.page_size = 128M; gcache.size = 131072; gcomm.thread_prio = ;"


def _summary(metric):
    return (metric.labels(), metric.value, metric.value_type)


def test_scrape_global_variables():
    rows = [
        ("wait_timeout", "28800"),
        ("version_compile_os", "Linux"),
        ("userstat", "OFF"),
        ("transaction_prealloc_size", "4096"),
        ("tx_isolation", "REPEATABLE-READ"),
        ("tmp_table_size", "16777216"),
        ("tmpdir", "/tmp"),
        ("sync_binlog", "0"),
        ("sync_frm", "ON"),
        ("slow_launch_time", "2"),
        ("innodb_version", "5.6.30-76.3"),
        ("version", "5.6.30-76.3-56"),
        ("version_comment", "Percona XtraDB Cluster..."),
        ("wsrep_cluster_name", "supercluster"),
        ("wsrep_provider_options", PROVIDER_M),
    ]
    instance, connection = _instance(rows)
    metrics = list(ScrapeGlobalVariables().scrape(instance))

    expected = [
        ({}, 28800, ValueType.GAUGE),
        ({}, 0, ValueType.GAUGE),
        ({}, 4096, ValueType.GAUGE),
        ({}, 16777216, ValueType.GAUGE),
        ({}, 0, ValueType.GAUGE),
        ({}, 1, ValueType.GAUGE),
        ({}, 2, ValueType.GAUGE),
        (
            {
                "innodb_version": "5.6.30-76.3",
                "version": "5.6.30-76.3-56",
                "version_comment": "Percona XtraDB Cluster...",
            },
            1,
            ValueType.GAUGE,
        ),
        ({"wsrep_cluster_name": "supercluster"}, 1, ValueType.GAUGE),
        ({}, 134217728, ValueType.GAUGE),
        ({"level": "REPEATABLE-READ"}, 1, ValueType.GAUGE),
    ]
    assert [_summary(m) for m in metrics] == expected
    assert connection.executed == [GLOBAL_VARIABLES_QUERY]


def test_scrape_metric_names():
    rows = [
        ("wait_timeout", "28800"),
        ("wsrep_cluster_name", "supercluster"),
        ("wsrep_provider_options", PROVIDER_B),
    ]
    instance, _ = _instance(rows)
    names = [m.name for m in ScrapeGlobalVariables().scrape(instance)]
    assert names == [
        "mysql_global_variables_wait_timeout",
        "mysql_version_info",
        "mysql_galera_variables_info",
        "mysql_galera_gcache_size_bytes",
    ]


def test_known_help_and_generic_help():
    rows = [("rocksdb_block_size", "4096"), ("Some.Var", "3")]
    instance, _ = _instance(rows)
    metrics = list(ScrapeGlobalVariables().scrape(instance))
    assert metrics[0].desc.help == GLOBAL_VARIABLES_HELP["rocksdb_block_size"]
    assert metrics[0].desc.help == "Size of the data block for reading sst files."
    assert metrics[1].name == "mysql_global_variables_some_var"
    assert metrics[1].desc.help == "Generic gauge metric from SHOW GLOBAL VARIABLES."


def test_transaction_isolation_prefers_new_variable():
    rows = [
        ("tx_isolation", "REPEATABLE-READ"),
        ("transaction_isolation", "READ-COMMITTED"),
    ]
    instance, _ = _instance(rows)
    metrics = list(ScrapeGlobalVariables().scrape(instance))
    assert [m.name for m in metrics] == ["mysql_version_info", "mysql_transaction_isolation"]
    assert metrics[1].labels() == {"level": "READ-COMMITTED"}


def test_only_version_info_when_nothing_known():
    instance, _ = _instance([("tmpdir", "/tmp")])
    metrics = list(ScrapeGlobalVariables().scrape(instance))
    assert len(metrics) == 1
    assert metrics[0].labels() == {"innodb_version": "", "version": "", "version_comment": ""}
    assert metrics[0].value == 1.0


def test_null_key_raises():
    instance, _ = _instance([(None, "1")])
    with pytest.raises(ValueError):
        list(ScrapeGlobalVariables().scrape(instance))


@pytest.mark.parametrize(
    "opts, expected",
    [
        ("", 0),
        (PROVIDER_M, 128 * 1024 * 1024),
        (PROVIDER_G, 2 * 1024 * 1024 * 1024),
        (PROVIDER_B, 131072),
    ],
)
def test_parse_wsrep_provider_options(opts, expected):
    assert parse_wsrep_provider_options(opts) == expected