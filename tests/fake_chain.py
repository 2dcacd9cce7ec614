"""In-memory chain client used by the orchestrator tests"""

from typing import Dict, List, Any, Optional

from cosm_orc.chain.client import (
    ChainClient, ChainResponse, Coin, ExecResponse, InstantiateResponse,
    MigrateResponse, QueryResponse, StoreCodeResponse
)
from cosm_orc.chain.keys import SigningKey


class FakeChainClient(ChainClient):
    """Hands out sequential code ids and addresses, with fixed gas costs"""

    def __init__(self, gas: Optional[Dict[str, int]] = None):
        self.gas = {'store': 1000, 'instantiate': 200, 'execute': 100, 'query': 0, 'migrate': 300}
        self.gas.update(gas or {})
        self.failures: Dict[str, Exception] = {}
        self.calls: List[tuple] = []
        self.code_ids = 0
        self.instances = 0
        self.code: Dict[int, bytes] = {}
        self.contracts: Dict[str, int] = {}

    def fail(self, method: str, error: Exception):
        self.failures[method] = error

    def _check(self, method: str, *args):
        self.calls.append((method,) + args)
        if method in self.failures:
            raise self.failures[method]

    def _res(self, method: str, data: Any = None) -> ChainResponse:
        return ChainResponse(gas_used=self.gas[method], gas_wanted=self.gas[method] + 50, data=data)

    def store(self, wasm: bytes, key: SigningKey) -> StoreCodeResponse:
        self._check('store', wasm)
        self.code_ids += 1
        self.code[self.code_ids] = wasm
        return StoreCodeResponse(code_id=self.code_ids, res=self._res('store'),
                                 tx_hash=f"TX{len(self.calls)}", height=len(self.calls))

    def instantiate(self, code_id: int, payload: bytes, funds: List[Coin], key: SigningKey,
                    label: Optional[str] = None, admin: Optional[str] = None) -> InstantiateResponse:
        self._check('instantiate', code_id, payload, label)
        self.instances += 1
        address = f"wasm1contract{self.instances}"
        self.contracts[address] = code_id
        return InstantiateResponse(address=address, res=self._res('instantiate'),
                                   tx_hash=f"TX{len(self.calls)}")

    def execute(self, address: str, payload: bytes, funds: List[Coin],
                key: SigningKey) -> ExecResponse:
        self._check('execute', address, payload)
        return ExecResponse(res=self._res('execute'), tx_hash=f"TX{len(self.calls)}")

    def query(self, address: str, payload: bytes) -> QueryResponse:
        self._check('query', address, payload)
        return QueryResponse(res=self._res('query', data=b'{"count": 1}'))

    def migrate(self, address: str, new_code_id: int, payload: bytes,
                key: SigningKey) -> MigrateResponse:
        self._check('migrate', address, new_code_id, payload)
        self.contracts[address] = new_code_id
        return MigrateResponse(res=self._res('migrate'), tx_hash=f"TX{len(self.calls)}")

    def poll_for_n_blocks(self, n: int, timeout: float, is_first_block: bool = False):
        self._check('poll_for_n_blocks', n, timeout, is_first_block)
