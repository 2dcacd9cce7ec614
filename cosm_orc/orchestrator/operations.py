from typing import List, Any, Optional, Union
from dataclasses import dataclass, field

from ..chain.client import Coin
from ..errors import OrchestratorError, ProfilingFailure
from ..profilers.records import OperationKind, OperationRecord

Payload = Union[dict, list, str, bytes]


@dataclass
class Store:
    """Upload contract code; binary is raw wasm bytes or a file path"""
    contract_name: str
    binary: Union[bytes, str]
    op_name: Optional[str] = "Store"

    kind = OperationKind.STORE


@dataclass
class Instantiate:
    contract_name: str
    payload: Payload
    label: Optional[str] = None
    funds: List[Coin] = field(default_factory=list)
    admin: Optional[str] = None
    op_name: Optional[str] = None

    kind = OperationKind.INSTANTIATE


@dataclass
class Execute:
    contract_name: str
    payload: Payload
    label: Optional[str] = None
    funds: List[Coin] = field(default_factory=list)
    op_name: Optional[str] = None

    kind = OperationKind.EXECUTE


@dataclass
class Query:
    contract_name: str
    payload: Payload
    label: Optional[str] = None
    op_name: Optional[str] = None

    kind = OperationKind.QUERY


@dataclass
class Migrate:
    """Move an instance to new code; new_code_id defaults to the name's current code id"""
    contract_name: str
    payload: Payload
    new_code_id: Optional[int] = None
    label: Optional[str] = None
    op_name: Optional[str] = None

    kind = OperationKind.MIGRATE


Operation = Union[Store, Instantiate, Execute, Query, Migrate]


@dataclass
class OperationResult:
    """A successfully completed operation"""
    index: int
    request: Operation
    record: OperationRecord
    response: Any

    @property
    def gas_used(self) -> int:
        return self.record.gas_used


@dataclass
class BatchResult:
    """Outcome of a batch: completed operations, plus the error that stopped it"""
    results: List[OperationResult] = field(default_factory=list)
    error: Optional[OrchestratorError] = None
    warnings: List[ProfilingFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def records(self) -> List[OperationRecord]:
        return [r.record for r in self.results]

    def raise_for_error(self):
        if self.error is not None:
            raise self.error

    def __len__(self) -> int:
        return len(self.results)
