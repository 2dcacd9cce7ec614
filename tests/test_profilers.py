import unittest
import os
import tempfile

# Import profiler components
import sys
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cosm_orc.errors import ProfilingFailure
from cosm_orc.profilers import (
    DiffStatus, GasProfiler, GroupKey, GroupStats, LoggingProfiler, OperationKind,
    OperationRecord, Report, ReportStore, diff
)


def make_record(sequence, contract_name, op_name, kind, gas_used, **kwargs):
    return OperationRecord(sequence=sequence, kind=kind, contract_name=contract_name,
                           op_name=op_name, gas_used=gas_used, **kwargs)


class TestGasProfiler(unittest.TestCase):
    """Test cases for gas aggregation"""

    def setUp(self):
        """Set up test fixtures"""
        self.profiler = GasProfiler()

    def test_aggregation(self):
        """Test min, max and mean per group"""
        for i, gas in enumerate([100, 200, 300]):
            self.profiler.observe(make_record(i, "cw20", "transfer", OperationKind.EXECUTE, gas))
        self.profiler.observe(make_record(3, "cw20", "init", OperationKind.INSTANTIATE, 50))

        stats = self.profiler.statistics()
        transfer = stats[GroupKey("cw20", "transfer", OperationKind.EXECUTE)]
        self.assertEqual(transfer.count, 3)
        self.assertEqual(transfer.min, 100)
        self.assertEqual(transfer.max, 300)
        self.assertEqual(transfer.mean, 200.0)
        self.assertEqual(transfer.total, 600)

        init = stats[GroupKey("cw20", "init", OperationKind.INSTANTIATE)]
        self.assertEqual(init.count, 1)
        self.assertEqual(init.min, init.max)

    def test_kind_is_part_of_the_key(self):
        """Test same name and op name under different kinds"""
        self.profiler.observe(make_record(0, "cw20", "balance", OperationKind.EXECUTE, 100))
        self.profiler.observe(make_record(1, "cw20", "balance", OperationKind.QUERY, 0))
        self.assertEqual(len(self.profiler.statistics()), 2)

    def test_exclude_queries(self):
        """Test queries can be left out of the report"""
        profiler = GasProfiler(include_queries=False)
        profiler.observe(make_record(0, "cw20", "balance", OperationKind.QUERY, 0))
        profiler.observe(make_record(1, "cw20", "transfer", OperationKind.EXECUTE, 10))
        self.assertEqual(len(profiler.store), 1)

    def test_rejects_malformed_records(self):
        """Test negative, boolean and non-integer gas"""
        for bad in (-1, True, 1.5, None):
            with self.assertRaises(ProfilingFailure) as ctx:
                self.profiler.observe(make_record(0, "cw20", "x", OperationKind.EXECUTE, bad))
            self.assertEqual(ctx.exception.profiler, "gas-profiler")

        with self.assertRaises(ProfilingFailure):
            self.profiler.observe({"gas_used": 1})

        self.assertEqual(len(self.profiler.store), 0)

    def test_report(self):
        """Test the exported report"""
        self.profiler.observe(make_record(0, "cw20", "transfer", OperationKind.EXECUTE, 10))
        report = self.profiler.report()
        self.assertEqual(report.name, "gas-profiler")
        self.assertEqual(report.keys(), [GroupKey("cw20", "transfer", OperationKind.EXECUTE)])

    def test_logging_profiler(self):
        """Test the logging profiler writes one line per record"""
        profiler = LoggingProfiler()
        with self.assertLogs("cosm_orc.profilers.profiler", level="INFO") as logs:
            profiler.observe(make_record(7, "cw20", "transfer", OperationKind.EXECUTE, 42))
        self.assertEqual(len(logs.output), 1)
        self.assertIn("gas_used=42", logs.output[0])
        self.assertIsNone(profiler.report())


class TestReportStore(unittest.TestCase):
    """Test cases for the report store"""

    def setUp(self):
        """Set up test fixtures"""
        self.store = ReportStore()
        self.store.append(make_record(0, "cw20", "init", OperationKind.INSTANTIATE, 500))
        self.store.append(make_record(1, "cw20", "transfer", OperationKind.EXECUTE, 100))
        self.store.append(make_record(2, "cw721", "mint", OperationKind.EXECUTE, 300))
        self.store.append(make_record(3, "cw20", "transfer", OperationKind.EXECUTE, 120))

    def test_append_order(self):
        """Test records keep append order"""
        self.assertEqual([r.sequence for r in self.store], [0, 1, 2, 3])
        self.assertEqual(len(self.store), 4)

    def test_group_by_first_seen_order(self):
        """Test groups are ordered by first appearance"""
        groups = self.store.group_by()
        self.assertEqual([str(k) for k in groups], [
            "cw20::Instantiate__init",
            "cw20::Execute__transfer",
            "cw721::Execute__mint",
        ])
        self.assertEqual(len(groups[GroupKey("cw20", "transfer", OperationKind.EXECUTE)]), 2)

    def test_filter(self):
        """Test filtering records"""
        self.assertEqual(len(self.store.filter(contract_name="cw20")), 3)
        self.assertEqual(len(self.store.filter(kind=OperationKind.EXECUTE)), 3)
        self.assertEqual(len(self.store.filter(contract_name="cw20", op_name="transfer")), 2)
        self.assertEqual(self.store.filter(contract_name="nope"), [])

    def test_merge_leaves_inputs_untouched(self):
        """Test merging two stores"""
        other = ReportStore([make_record(4, "cw20", "transfer", OperationKind.EXECUTE, 140)])
        merged = self.store.merge(other)

        self.assertEqual(len(merged), 5)
        self.assertEqual(len(self.store), 4)
        self.assertEqual(len(other), 1)
        stats = merged.statistics()[GroupKey("cw20", "transfer", OperationKind.EXECUTE)]
        self.assertEqual(stats.count, 3)
        self.assertEqual(stats.mean, 120.0)

    def test_records_is_read_only(self):
        """Test the records view cannot be mutated"""
        self.assertIsInstance(self.store.records, tuple)

    def test_empty_group_rejected(self):
        """Test statistics need at least one value"""
        with self.assertRaises(ValueError):
            GroupStats.from_values([])

    def test_report_serialization(self):
        """Test report JSON export and import"""
        report = self.store.summary("nightly")
        restored = Report.from_json(report.to_json())

        self.assertEqual(restored.name, "nightly")
        self.assertEqual(restored.groups, report.groups)
        self.assertEqual(restored.keys(), report.keys())

        fd, path = tempfile.mkstemp(suffix=".json")
        os.close(fd)
        try:
            report.save(path)
            self.assertEqual(Report.load(path).groups, report.groups)
        finally:
            os.remove(path)

    def test_report_version_check(self):
        """Test unknown report versions are refused"""
        data = self.store.summary().to_dict()
        data['version'] = 99
        with self.assertRaises(ValueError):
            Report.from_dict(data)

    def test_report_keeps_gas_wanted_and_call_sites(self):
        """Test exported groups carry gas_wanted and where operations were issued"""
        store = ReportStore([
            make_record(0, "cw20", "transfer", OperationKind.EXECUTE, 100, gas_wanted=150,
                        source_file="/app/deploy.py", source_line=10),
            make_record(1, "cw20", "transfer", OperationKind.EXECUTE, 120, gas_wanted=170,
                        source_file="/app/deploy.py", source_line=20),
            make_record(2, "cw20", "transfer", OperationKind.EXECUTE, 110, gas_wanted=160,
                        source_file="/app/deploy.py", source_line=10),
        ])

        stats = store.statistics()[GroupKey("cw20", "transfer", OperationKind.EXECUTE)]
        self.assertEqual(stats.mean_gas_wanted, 160.0)
        self.assertEqual(stats.locations, ("/app/deploy.py:10", "/app/deploy.py:20"))

        restored = Report.from_json(store.summary().to_json())
        self.assertEqual(restored.groups, store.statistics())

    def test_report_without_gas_wanted(self):
        """Test reports written without the gas_wanted fields still load"""
        data = self.store.summary().to_dict()
        for group in data['groups']:
            del group['mean_gas_wanted']
            del group['locations']

        report = Report.from_dict(data)
        stats = report.get(GroupKey("cw20", "init", OperationKind.INSTANTIATE))
        self.assertEqual(stats.mean, 500.0)
        self.assertIsNone(stats.mean_gas_wanted)
        self.assertEqual(stats.locations, ())

    def test_record_dict_round_trip(self):
        """Test record export keeps every field"""
        record = make_record(9, "cw20", None, OperationKind.STORE, 1000,
                             gas_wanted=1200, tx_hash="ABC", source_line=12)
        self.assertEqual(OperationRecord.from_dict(record.to_dict()), record)


class TestDiff(unittest.TestCase):
    """Test cases for report diffing"""

    def setUp(self):
        """Set up test fixtures"""
        self.transfer = GroupKey("cw20", "transfer", OperationKind.EXECUTE)
        self.init = GroupKey("cw20", "init", OperationKind.INSTANTIATE)
        self.mint = GroupKey("cw721", "mint", OperationKind.EXECUTE)

        self.before = Report("main", {
            self.transfer: GroupStats.from_values([100, 100]),
            self.init: GroupStats.from_values([500]),
        })
        self.after = Report("branch", {
            self.transfer: GroupStats.from_values([120, 130]),
            self.mint: GroupStats.from_values([300]),
        })

    def test_self_diff_is_zero(self):
        """Test diffing a report against itself"""
        entries = diff(self.before, self.before)
        self.assertEqual(len(entries), 2)
        for entry in entries:
            self.assertEqual(entry.delta, 0)
            self.assertEqual(entry.percent_delta, 0.0)
            self.assertEqual(entry.status, DiffStatus.UNCHANGED)

    def test_changed_added_removed(self):
        """Test every key from either side is reported"""
        entries = {e.key: e for e in diff(self.before, self.after)}
        self.assertEqual(list(entries), [self.transfer, self.init, self.mint])

        transfer = entries[self.transfer]
        self.assertEqual(transfer.before, 100.0)
        self.assertEqual(transfer.after, 125.0)
        self.assertEqual(transfer.delta, 25.0)
        self.assertEqual(transfer.percent_delta, 25.0)
        self.assertEqual(transfer.status, DiffStatus.CHANGED)

        removed = entries[self.init]
        self.assertEqual(removed.before, 500.0)
        self.assertIsNone(removed.after)
        self.assertIsNone(removed.delta)
        self.assertIsNone(removed.percent_delta)
        self.assertEqual(removed.status, DiffStatus.REMOVED)

        added = entries[self.mint]
        self.assertIsNone(added.before)
        self.assertEqual(added.after, 300.0)
        self.assertEqual(added.status, DiffStatus.ADDED)

    def test_diff_is_antisymmetric(self):
        """Test swapping the inputs inverts the deltas"""
        forward = {e.key: e for e in diff(self.before, self.after)}
        backward = {e.key: e for e in diff(self.after, self.before)}

        self.assertEqual(set(forward), set(backward))
        for key, entry in forward.items():
            if entry.delta is None:
                self.assertIsNone(backward[key].delta)
            else:
                self.assertEqual(entry.delta, -backward[key].delta)

    def test_metric_selection(self):
        """Test diffing on another statistic"""
        entries = {e.key: e for e in diff(self.before, self.after, metric='max')}
        self.assertEqual(entries[self.transfer].delta, 30.0)

        entries = {e.key: e for e in diff(self.before, self.after, metric='count')}
        self.assertEqual(entries[self.transfer].delta, 0.0)

    def test_zero_baseline(self):
        """Test percent change against a zero baseline"""
        key = GroupKey("cw20", "balance", OperationKind.QUERY)
        zero = Report("a", {key: GroupStats.from_values([0])})
        nonzero = Report("b", {key: GroupStats.from_values([10])})

        self.assertEqual(diff(zero, zero)[0].percent_delta, 0.0)
        entry = diff(zero, nonzero)[0]
        self.assertEqual(entry.delta, 10.0)
        self.assertIsNone(entry.percent_delta)

    def test_unknown_metric(self):
        """Test an unsupported metric"""
        with self.assertRaises(ValueError):
            diff(self.before, self.after, metric='median')

    def test_accepts_report_stores(self):
        """Test diffing report stores directly"""
        store = ReportStore([make_record(0, "cw20", "transfer", OperationKind.EXECUTE, 100)])
        entries = diff(store, self.after)
        self.assertEqual(entries[0].key, self.transfer)
        self.assertEqual(entries[0].delta, 25.0)
        self.assertEqual(len(store), 1)


if __name__ == '__main__':
    unittest.main()
