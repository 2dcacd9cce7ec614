from typing import Any, List, Optional
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from .keys import SigningKey


@dataclass(frozen=True)
class Coin:
    """Token amount attached to a transaction"""
    denom: str
    amount: int

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"


@dataclass
class ChainResponse:
    """Raw outcome of a transaction or query"""
    code: int = 0
    data: Optional[bytes] = None
    log: str = ""
    gas_wanted: int = 0
    gas_used: int = 0

    @property
    def is_ok(self) -> bool:
        return self.code == 0

    def json(self) -> Any:
        """Decode the response data as JSON"""
        if not self.data:
            raise ValueError("Raw chain response is empty")
        return json.loads(self.data)


@dataclass
class StoreCodeResponse:
    code_id: int
    res: ChainResponse = field(default_factory=ChainResponse)
    tx_hash: str = ""
    height: int = 0


@dataclass
class InstantiateResponse:
    address: str
    res: ChainResponse = field(default_factory=ChainResponse)
    tx_hash: str = ""
    height: int = 0


@dataclass
class ExecResponse:
    res: ChainResponse = field(default_factory=ChainResponse)
    tx_hash: str = ""
    height: int = 0


@dataclass
class QueryResponse:
    res: ChainResponse = field(default_factory=ChainResponse)
    tx_hash: str = ""


@dataclass
class MigrateResponse:
    res: ChainResponse = field(default_factory=ChainResponse)
    tx_hash: str = ""
    height: int = 0


class ChainClient(ABC):
    """Builds, signs and submits operations to a ledger.

    Calls block until the chain answers. Failures are raised as
    ChainRejected (ledger said no), TransportFailure or ChainTimeout.
    Retries, if any, happen in here and never in the orchestrator.
    """

    @abstractmethod
    def store(self, wasm: bytes, key: SigningKey) -> StoreCodeResponse:
        pass

    @abstractmethod
    def instantiate(self, code_id: int, payload: bytes, funds: List[Coin], key: SigningKey,
                    label: Optional[str] = None, admin: Optional[str] = None) -> InstantiateResponse:
        pass

    @abstractmethod
    def execute(self, address: str, payload: bytes, funds: List[Coin],
                key: SigningKey) -> ExecResponse:
        pass

    @abstractmethod
    def query(self, address: str, payload: bytes) -> QueryResponse:
        pass

    @abstractmethod
    def migrate(self, address: str, new_code_id: int, payload: bytes,
                key: SigningKey) -> MigrateResponse:
        pass

    @abstractmethod
    def poll_for_n_blocks(self, n: int, timeout: float, is_first_block: bool = False):
        """Block until n more blocks have been produced, or raise ChainTimeout.

        With is_first_block, transport errors are retried until the deadline
        so a node that has not produced its first block can be waited on.
        """
        pass
