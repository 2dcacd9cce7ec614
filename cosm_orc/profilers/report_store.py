from typing import Dict, List, Any, Iterable, Iterator, NamedTuple, Optional, Tuple
import json
import statistics
import time
from dataclasses import dataclass, field, replace

from .records import OperationKind, OperationRecord

REPORT_FORMAT_VERSION = 1


class GroupKey(NamedTuple):
    """Aggregation key for operation records"""
    contract_name: str
    op_name: Optional[str]
    kind: OperationKind

    def __str__(self) -> str:
        return f"{self.contract_name}::{self.kind.value}__{self.op_name or '-'}"


@dataclass(frozen=True)
class GroupStats:
    """Aggregate gas statistics for one group"""
    count: int
    min: int
    max: int
    mean: float
    total: int
    mean_gas_wanted: Optional[float] = None
    # "file:line" call sites that issued the operations, first-seen order
    locations: Tuple[str, ...] = ()

    @classmethod
    def from_values(cls, values: List[int]) -> 'GroupStats':
        if not values:
            raise ValueError("cannot aggregate an empty group")
        return cls(
            count=len(values),
            min=min(values),
            max=max(values),
            mean=float(statistics.mean(values)),
            total=sum(values)
        )

    @classmethod
    def from_records(cls, records: List[OperationRecord]) -> 'GroupStats':
        """gas_used statistics plus mean gas_wanted and the call sites"""
        stats = cls.from_values([r.gas_used for r in records])
        locations: List[str] = []
        for record in records:
            if record.source_file is None:
                continue
            location = f"{record.source_file}:{record.source_line}"
            if location not in locations:
                locations.append(location)
        return replace(
            stats,
            mean_gas_wanted=float(statistics.mean(r.gas_wanted for r in records)),
            locations=tuple(locations)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'count': self.count,
            'min': self.min,
            'max': self.max,
            'mean': self.mean,
            'total': self.total,
            'mean_gas_wanted': self.mean_gas_wanted,
            'locations': list(self.locations)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GroupStats':
        return cls(
            count=int(data['count']),
            min=int(data['min']),
            max=int(data['max']),
            mean=float(data['mean']),
            total=int(data.get('total', round(float(data['mean']) * int(data['count'])))),
            mean_gas_wanted=(None if data.get('mean_gas_wanted') is None
                             else float(data['mean_gas_wanted'])),
            locations=tuple(data.get('locations') or ())
        )


@dataclass
class Report:
    """Grouped statistics snapshot, the exported form of a report store"""
    name: str
    groups: Dict[GroupKey, GroupStats] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)

    def keys(self) -> List[GroupKey]:
        return list(self.groups.keys())

    def get(self, key: GroupKey) -> Optional[GroupStats]:
        return self.groups.get(key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'version': REPORT_FORMAT_VERSION,
            'created_at': self.created_at,
            'groups': [
                {
                    'contract_name': key.contract_name,
                    'op_name': key.op_name,
                    'kind': key.kind.value,
                    **stats.to_dict()
                }
                for key, stats in self.groups.items()
            ]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Report':
        version = data.get('version', REPORT_FORMAT_VERSION)
        if version != REPORT_FORMAT_VERSION:
            raise ValueError(f"Unsupported report version: {version}")

        groups = {}
        for entry in data.get('groups', []):
            key = GroupKey(entry['contract_name'], entry.get('op_name'),
                           OperationKind(entry['kind']))
            groups[key] = GroupStats.from_dict(entry)

        return cls(name=data.get('name', 'report'), groups=groups,
                   created_at=data.get('created_at', 0.0))

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, text) -> 'Report':
        if isinstance(text, bytes):
            text = text.decode('utf-8')
        return cls.from_dict(json.loads(text))

    def save(self, path: str):
        """Write the report as JSON"""
        with open(path, 'w', encoding='utf-8') as f:
            f.write(self.to_json())

    @classmethod
    def load(cls, path: str) -> 'Report':
        """Read a report written by save()"""
        with open(path, 'r', encoding='utf-8') as f:
            return cls.from_json(f.read())


class ReportStore:
    """Append-only, ordered collection of operation records"""

    def __init__(self, records: Optional[Iterable[OperationRecord]] = None):
        self._records: List[OperationRecord] = list(records or [])

    def append(self, record: OperationRecord):
        self._records.append(record)

    @property
    def records(self) -> Tuple[OperationRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[OperationRecord]:
        return iter(tuple(self._records))

    def filter(self, contract_name: Optional[str] = None,
               kind: Optional[OperationKind] = None,
               op_name: Optional[str] = None) -> List[OperationRecord]:
        """Records matching every given criterion, in append order"""
        result = self._records
        if contract_name is not None:
            result = [r for r in result if r.contract_name == contract_name]
        if kind is not None:
            result = [r for r in result if r.kind == kind]
        if op_name is not None:
            result = [r for r in result if r.op_name == op_name]
        return list(result)

    def group_by(self) -> Dict[GroupKey, List[OperationRecord]]:
        """Records grouped by (contract, op name, kind), in first-seen order"""
        groups: Dict[GroupKey, List[OperationRecord]] = {}
        for record in self._records:
            key = GroupKey(record.contract_name, record.op_name, record.kind)
            groups.setdefault(key, []).append(record)
        return groups

    def statistics(self) -> Dict[GroupKey, GroupStats]:
        return {
            key: GroupStats.from_records(records)
            for key, records in self.group_by().items()
        }

    def merge(self, other: 'ReportStore') -> 'ReportStore':
        """New store with this store's records followed by other's"""
        return ReportStore(self._records + list(other.records))

    def summary(self, name: str = 'gas-profiler') -> Report:
        return Report(name=name, groups=self.statistics())

    def to_json(self, name: str = 'gas-profiler') -> str:
        return self.summary(name).to_json()
