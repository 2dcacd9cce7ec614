from typing import Optional
import logging
from abc import ABC, abstractmethod

from .records import OperationRecord
from .report_store import Report

logger = logging.getLogger(__name__)


class Profiler(ABC):
    """Observes completed operations.

    The orchestrator calls observe() synchronously, once per completed
    operation, in submission order. A slow profiler delays the batch.
    Implementations should raise ProfilingFailure for records they cannot
    handle; the orchestrator reports it as a warning and keeps going.
    """

    name: str = "profiler"

    @abstractmethod
    def observe(self, record: OperationRecord):
        pass

    def report(self) -> Optional[Report]:
        """Aggregated report, or None if this profiler keeps no statistics"""
        return None


class NullProfiler(Profiler):
    """Profiler that ignores everything"""

    name = "null-profiler"

    def observe(self, record: OperationRecord):
        pass


class LoggingProfiler(Profiler):
    """Logs each observed operation"""

    name = "logging-profiler"

    def __init__(self, level: int = logging.INFO):
        self.level = level

    def observe(self, record: OperationRecord):
        logger.log(
            self.level,
            f"[{record.sequence}] {record.kind.value} {record.contract_name}"
            f" op={record.op_name} gas_used={record.gas_used}"
            f" gas_wanted={record.gas_wanted} ({record.duration_ms:.1f} ms)"
        )
