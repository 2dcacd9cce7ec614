from typing import Dict, Any, Optional
import time
from dataclasses import dataclass, field
from enum import Enum


class OperationKind(Enum):
    """Contract lifecycle operations"""
    STORE = "Store"
    INSTANTIATE = "Instantiate"
    EXECUTE = "Execute"
    QUERY = "Query"
    MIGRATE = "Migrate"


@dataclass(frozen=True)
class OperationRecord:
    """Measurement for one completed operation"""
    sequence: int
    kind: OperationKind
    contract_name: str
    op_name: Optional[str]
    gas_used: int
    gas_wanted: int = 0
    label: Optional[str] = None
    index: int = 0
    duration_ms: float = 0.0
    timestamp: float = field(default_factory=time.time)
    tx_hash: Optional[str] = None
    source_file: Optional[str] = None
    source_line: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sequence': self.sequence,
            'kind': self.kind.value,
            'contract_name': self.contract_name,
            'op_name': self.op_name,
            'gas_used': self.gas_used,
            'gas_wanted': self.gas_wanted,
            'label': self.label,
            'index': self.index,
            'duration_ms': self.duration_ms,
            'timestamp': self.timestamp,
            'tx_hash': self.tx_hash,
            'source_file': self.source_file,
            'source_line': self.source_line
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OperationRecord':
        return cls(
            sequence=data['sequence'],
            kind=OperationKind(data['kind']),
            contract_name=data['contract_name'],
            op_name=data.get('op_name'),
            gas_used=data['gas_used'],
            gas_wanted=data.get('gas_wanted', 0),
            label=data.get('label'),
            index=data.get('index', 0),
            duration_ms=data.get('duration_ms', 0.0),
            timestamp=data.get('timestamp', 0.0),
            tx_hash=data.get('tx_hash'),
            source_file=data.get('source_file'),
            source_line=data.get('source_line')
        )
