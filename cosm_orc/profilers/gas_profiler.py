from typing import Dict, Optional
import logging

from ..errors import ProfilingFailure
from .profiler import Profiler
from .records import OperationKind, OperationRecord
from .report_store import GroupKey, GroupStats, Report, ReportStore

logger = logging.getLogger(__name__)


class GasProfiler(Profiler):
    """Aggregates gas usage by contract, operation name and kind"""

    name = "gas-profiler"

    def __init__(self, store: Optional[ReportStore] = None, include_queries: bool = True):
        self.store = store if store is not None else ReportStore()
        self.include_queries = include_queries

    def observe(self, record: OperationRecord):
        if not isinstance(record, OperationRecord):
            raise ProfilingFailure(f"expected OperationRecord, got {type(record).__name__}",
                                   profiler=self.name)

        gas_used = record.gas_used
        if isinstance(gas_used, bool) or not isinstance(gas_used, int) or gas_used < 0:
            raise ProfilingFailure(f"invalid gas_used value: {gas_used!r}",
                                   profiler=self.name,
                                   contract_name=record.contract_name,
                                   kind=record.kind)

        if record.kind == OperationKind.QUERY and not self.include_queries:
            return

        self.store.append(record)
        logger.debug(f"Recorded {record.kind.value} {record.contract_name} gas_used={gas_used}")

    def statistics(self) -> Dict[GroupKey, GroupStats]:
        return self.store.statistics()

    def report(self) -> Report:
        return self.store.summary(self.name)
