from typing import List, Optional, Union
from dataclasses import dataclass
from enum import Enum

from .report_store import GroupKey, GroupStats, Report, ReportStore

DIFF_METRICS = ('mean', 'min', 'max', 'total', 'count')


class DiffStatus(Enum):
    ADDED = "ADDED"
    REMOVED = "REMOVED"
    CHANGED = "CHANGED"
    UNCHANGED = "UNCHANGED"


@dataclass(frozen=True)
class DiffEntry:
    """Comparison of one group between two reports"""
    key: GroupKey
    before: Optional[float]
    after: Optional[float]
    delta: Optional[float]
    percent_delta: Optional[float]
    before_stats: Optional[GroupStats] = None
    after_stats: Optional[GroupStats] = None

    @property
    def status(self) -> DiffStatus:
        if self.before is None:
            return DiffStatus.ADDED
        if self.after is None:
            return DiffStatus.REMOVED
        if self.delta == 0:
            return DiffStatus.UNCHANGED
        return DiffStatus.CHANGED


def _as_report(report: Union[Report, ReportStore]) -> Report:
    if isinstance(report, ReportStore):
        return report.summary()
    return report


def _metric(stats: Optional[GroupStats], metric: str) -> Optional[float]:
    if stats is None:
        return None
    return float(getattr(stats, metric))


def diff(before: Union[Report, ReportStore], after: Union[Report, ReportStore],
         metric: str = 'mean') -> List[DiffEntry]:
    """Compare two reports group by group.

    Every key present in either report gets an entry. A key missing on one
    side has that side set to None, as do delta and percent_delta, so an
    added or removed operation is never confused with an unchanged one.
    Neither input is modified.
    """
    if metric not in DIFF_METRICS:
        raise ValueError(f"Unknown metric {metric!r}, expected one of {DIFF_METRICS}")

    a = _as_report(before)
    b = _as_report(after)

    keys = list(a.groups.keys())
    keys.extend(k for k in b.groups.keys() if k not in a.groups)

    entries = []
    for key in keys:
        before_stats = a.groups.get(key)
        after_stats = b.groups.get(key)
        before_value = _metric(before_stats, metric)
        after_value = _metric(after_stats, metric)

        delta = None
        percent = None
        if before_value is not None and after_value is not None:
            delta = after_value - before_value
            if before_value != 0:
                percent = delta / before_value * 100
            elif delta == 0:
                percent = 0.0

        entries.append(DiffEntry(
            key=key,
            before=before_value,
            after=after_value,
            delta=delta,
            percent_delta=percent,
            before_stats=before_stats,
            after_stats=after_stats
        ))

    return entries
