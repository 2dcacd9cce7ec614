from typing import List, Any, Iterable, Optional, Tuple
import inspect
import json
import logging
import os
import time

from ..chain.client import ChainClient, ChainResponse, Coin
from ..chain.keys import SigningKey
from ..errors import (
    InvalidPayload, OrchestratorError, ProfilingFailure, StoreError, TransportFailure
)
from ..profilers.gas_profiler import GasProfiler
from ..profilers.profiler import Profiler
from ..profilers.records import OperationRecord
from ..profilers.report_store import Report, ReportStore
from .operations import (
    BatchResult, Execute, Instantiate, Migrate, Operation, OperationResult,
    Payload, Query, Store
)
from .registry import ContractRegistry

logger = logging.getLogger(__name__)

_PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _caller_location() -> Tuple[Optional[str], Optional[int]]:
    """File and line of the first stack frame outside this package"""
    frame = inspect.currentframe()
    try:
        while frame is not None:
            filename = os.path.abspath(frame.f_code.co_filename)
            if not filename.startswith(_PACKAGE_DIR + os.sep):
                return filename, frame.f_lineno
            frame = frame.f_back
        return None, None
    finally:
        del frame


class Orchestrator:
    """Runs contract operations against a chain, one at a time.

    Owns the contract registry and the report store for its session.
    Operations are processed strictly in order because later ones depend on
    ids produced by earlier ones. Every attached profiler sees every
    completed operation, synchronously, in order.
    """

    def __init__(self, client: ChainClient, registry: Optional[ContractRegistry] = None,
                 profilers: Optional[Iterable[Profiler]] = None, use_gas_profiler: bool = True):
        self.client = client
        self.registry = registry if registry is not None else ContractRegistry()
        self.report_store = ReportStore()
        self.profilers: List[Profiler] = []
        self.profiling_failures: List[ProfilingFailure] = []
        self._sequence = 0

        if use_gas_profiler:
            self.profilers.append(GasProfiler(self.report_store))
        for profiler in profilers or []:
            self.profilers.append(profiler)

    def add_profiler(self, profiler: Profiler) -> 'Orchestrator':
        """Attach another profiler; can be chained"""
        self.profilers.append(profiler)
        return self

    # ------------------------------------------------------------ batches

    def process(self, requests: Iterable[Operation], key: SigningKey) -> BatchResult:
        """Run operations in order, stopping at the first failure.

        Operations that completed before the failure keep their registry and
        report effects; their chain side effects are already final.
        """
        caller = _caller_location()
        requests = list(requests)
        batch = BatchResult()

        for index, request in enumerate(requests):
            try:
                result = self._process(index, request, key, caller, batch.warnings)
            except OrchestratorError as e:
                e.attach(index, request.contract_name, request.kind)
                logger.error(f"Batch aborted at operation {index + 1}/{len(requests)}: {e}")
                batch.error = e
                break
            batch.results.append(result)

        return batch

    def process_one(self, request: Operation, key: SigningKey) -> OperationResult:
        """Run a single operation, raising on failure"""
        try:
            return self._process(0, request, key, _caller_location(), [])
        except OrchestratorError as e:
            e.attach(0, request.contract_name, request.kind)
            raise

    def store_contracts(self, wasm_dir: str, key: SigningKey) -> BatchResult:
        """Store every .wasm file in wasm_dir under its file stem.

        Not needed for contracts whose code ids were already configured.
        """
        try:
            names = sorted(f for f in os.listdir(wasm_dir) if f.endswith('.wasm'))
        except OSError as e:
            raise StoreError(f"error reading wasm_dir {wasm_dir}: {e}") from e

        requests = []
        for filename in names:
            logger.info(f"Storing {os.path.join(wasm_dir, filename)}")
            requests.append(Store(contract_name=os.path.splitext(filename)[0],
                                  binary=os.path.join(wasm_dir, filename)))
        return self.process(requests, key)

    # ---------------------------------------------------- single operations

    def store(self, contract_name: str, binary, key: SigningKey, op_name: str = "Store"):
        return self.process_one(Store(contract_name, binary, op_name=op_name), key).response

    def instantiate(self, contract_name: str, op_name: str, payload: Payload, key: SigningKey,
                    label: Optional[str] = None, funds: Optional[List[Coin]] = None,
                    admin: Optional[str] = None):
        request = Instantiate(contract_name, payload, label=label, funds=funds or [],
                              admin=admin, op_name=op_name)
        return self.process_one(request, key).response

    def execute(self, contract_name: str, op_name: str, payload: Payload, key: SigningKey,
                label: Optional[str] = None, funds: Optional[List[Coin]] = None):
        request = Execute(contract_name, payload, label=label, funds=funds or [], op_name=op_name)
        return self.process_one(request, key).response

    def query(self, contract_name: str, payload: Payload, label: Optional[str] = None,
              op_name: Optional[str] = None):
        request = Query(contract_name, payload, label=label, op_name=op_name)
        return self.process_one(request, None).response

    def migrate(self, contract_name: str, op_name: str, payload: Payload, key: SigningKey,
                new_code_id: Optional[int] = None, label: Optional[str] = None):
        request = Migrate(contract_name, payload, new_code_id=new_code_id, label=label,
                          op_name=op_name)
        return self.process_one(request, key).response

    def poll_for_n_blocks(self, n: int, timeout: float, is_first_block: bool = False):
        """Block until n blocks have been produced, or raise ChainTimeout"""
        self.client.poll_for_n_blocks(n, timeout, is_first_block)

    # ------------------------------------------------------------- reports

    def profiler_reports(self) -> List[Report]:
        reports = []
        for profiler in self.profilers:
            report = profiler.report()
            if report is not None:
                reports.append(report)
        return reports

    def gas_report(self) -> Report:
        return self.report_store.summary()

    # ------------------------------------------------------------ internals

    def _process(self, index: int, request: Operation, key: Optional[SigningKey],
                 caller: Tuple[Optional[str], Optional[int]],
                 warnings: List[ProfilingFailure]) -> OperationResult:
        started = time.monotonic()
        response = self._dispatch(request, key)
        duration_ms = (time.monotonic() - started) * 1000

        res: ChainResponse = response.res
        self._sequence += 1
        record = OperationRecord(
            sequence=self._sequence,
            kind=request.kind,
            contract_name=request.contract_name,
            op_name=request.op_name,
            gas_used=res.gas_used,
            gas_wanted=res.gas_wanted,
            label=getattr(request, 'label', None),
            index=index,
            duration_ms=duration_ms,
            tx_hash=getattr(response, 'tx_hash', None) or None,
            source_file=caller[0],
            source_line=caller[1]
        )
        logger.debug(f"{request.kind.value} {request.contract_name}: {res}")

        self._notify(record, warnings)
        return OperationResult(index=index, request=request, record=record, response=response)

    def _dispatch(self, request: Operation, key: Optional[SigningKey]) -> Any:
        name = request.contract_name

        if isinstance(request, Store):
            wasm = self._read_binary(request.binary)
            response = self._call_client(self.client.store, wasm, key)
            self.registry.register_code(name, response.code_id)
            return response

        if isinstance(request, Instantiate):
            code_id = self.registry.resolve_code(name)
            payload = self._encode_payload(request.payload)
            response = self._call_client(self.client.instantiate, code_id, payload,
                                         request.funds, key, label=request.label,
                                         admin=request.admin)
            self.registry.register_address(name, request.label, response.address)
            return response

        if isinstance(request, Execute):
            address = self.registry.resolve_address(name, request.label)
            payload = self._encode_payload(request.payload)
            return self._call_client(self.client.execute, address, payload, request.funds, key)

        if isinstance(request, Query):
            address = self.registry.resolve_address(name, request.label)
            payload = self._encode_payload(request.payload)
            return self._call_client(self.client.query, address, payload)

        if isinstance(request, Migrate):
            address = self.registry.resolve_address(name, request.label)
            new_code_id = request.new_code_id
            if new_code_id is None:
                new_code_id = self.registry.resolve_code(name)
            payload = self._encode_payload(request.payload)
            response = self._call_client(self.client.migrate, address, new_code_id, payload, key)
            self.registry.register_code(name, new_code_id)
            return response

        raise TypeError(f"Unsupported operation: {type(request).__name__}")

    @staticmethod
    def _call_client(method, *args, **kwargs) -> Any:
        """Call a chain client method; anything but an OrchestratorError becomes TransportFailure"""
        try:
            return method(*args, **kwargs)
        except OrchestratorError:
            raise
        except Exception as e:
            raise TransportFailure(
                f"chain client {getattr(method, '__name__', 'call')} failed: {type(e).__name__}: {e}"
            ) from e

    def _notify(self, record: OperationRecord, warnings: List[ProfilingFailure]):
        for profiler in self.profilers:
            try:
                profiler.observe(record)
                continue
            except ProfilingFailure as e:
                failure = e
            except Exception as e:
                failure = ProfilingFailure(f"{type(e).__name__}: {e}")
                failure.__cause__ = e

            failure.profiler = failure.profiler or profiler.name
            failure.attach(record.index, record.contract_name, record.kind)
            logger.warning(f"Profiler {failure.profiler} failed: {failure}")
            warnings.append(failure)
            self.profiling_failures.append(failure)

    @staticmethod
    def _encode_payload(payload: Payload) -> bytes:
        if isinstance(payload, (bytes, bytearray)):
            return bytes(payload)
        if isinstance(payload, str):
            return payload.encode('utf-8')
        try:
            return json.dumps(payload).encode('utf-8')
        except (TypeError, ValueError) as e:
            raise InvalidPayload(f"payload is not JSON serializable: {e}") from e

    @staticmethod
    def _read_binary(binary) -> bytes:
        if isinstance(binary, (bytes, bytearray)):
            return bytes(binary)
        try:
            with open(binary, 'rb') as f:
                return f.read()
        except OSError as e:
            raise StoreError(f"error reading wasm file {binary}: {e}") from e

    def __repr__(self) -> str:
        return f"Orchestrator(registry={self.registry!r}, profilers={[p.name for p in self.profilers]})"
