"""Profilers Module

Observes completed contract operations and turns them into reports:

- OperationRecord: immutable measurement for one operation
- Profiler: capability interface called once per operation
- GasProfiler: aggregates gas usage per (contract, operation, kind)
- ReportStore: append-only record collection with grouped statistics
- Report: exportable grouped statistics (JSON round-trip)
- diff: compares two reports group by group
"""

from .records import OperationKind, OperationRecord
from .report_store import GroupKey, GroupStats, Report, ReportStore
from .profiler import Profiler, NullProfiler, LoggingProfiler
from .gas_profiler import GasProfiler
from .diff import diff, DiffEntry, DiffStatus, DIFF_METRICS

__all__ = [
    'OperationKind',
    'OperationRecord',
    'GroupKey',
    'GroupStats',
    'Report',
    'ReportStore',
    'Profiler',
    'NullProfiler',
    'LoggingProfiler',
    'GasProfiler',
    'diff',
    'DiffEntry',
    'DiffStatus',
    'DIFF_METRICS'
]
