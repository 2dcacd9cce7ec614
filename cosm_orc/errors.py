from typing import Any, List, Optional


class OrchestratorError(Exception):
    """Base class for every error raised by the orchestrator"""

    def __init__(self, message: str, contract_name: Optional[str] = None,
                 kind: Any = None, index: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.contract_name = contract_name
        self.kind = kind
        self.index = index

    def attach(self, index: int, contract_name: str, kind: Any) -> 'OrchestratorError':
        """Fill in batch context that the raising layer did not know about"""
        if self.index is None:
            self.index = index
        if self.contract_name is None:
            self.contract_name = contract_name
        if self.kind is None:
            self.kind = kind
        return self

    def context(self) -> str:
        parts = []
        if self.index is not None:
            parts.append(f"index={self.index}")
        if self.contract_name is not None:
            parts.append(f"contract={self.contract_name}")
        if self.kind is not None:
            parts.append(f"kind={getattr(self.kind, 'value', self.kind)}")
        return ", ".join(parts)

    def __str__(self) -> str:
        ctx = self.context()
        return f"{self.message} ({ctx})" if ctx else self.message


class ResolutionError(OrchestratorError):
    """A contract name or instance could not be resolved by the registry"""
    pass


class UnknownContract(ResolutionError):
    """Contract name was never stored"""

    def __init__(self, contract_name: str, **kwargs):
        super().__init__(f"smart contract not stored on chain: {contract_name!r}",
                         contract_name=contract_name, **kwargs)


class UnknownInstance(ResolutionError):
    """Contract is stored but has no instance with the requested label"""

    def __init__(self, contract_name: str, label: Optional[str] = None, **kwargs):
        if label is None:
            message = f"smart contract not instantiated on chain: {contract_name!r}"
        else:
            message = f"smart contract {contract_name!r} has no instance labelled {label!r}"
        super().__init__(message, contract_name=contract_name, **kwargs)
        self.label = label


class AmbiguousInstance(ResolutionError):
    """No label given and the contract has more than one instance"""

    def __init__(self, contract_name: str, candidates: List[Optional[str]], **kwargs):
        super().__init__(
            f"smart contract {contract_name!r} has {len(candidates)} instances, "
            f"a label is required (candidates: {candidates})",
            contract_name=contract_name, **kwargs)
        self.candidates = list(candidates)


class ChainError(OrchestratorError):
    """Failure reported by the chain client"""
    pass


class ChainRejected(ChainError):
    """The ledger returned a failure for the operation"""

    def __init__(self, message: str, code: Optional[int] = None,
                 raw_log: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.code = code
        self.raw_log = raw_log


class TransportFailure(ChainError):
    """Network or process level failure talking to the chain"""
    pass


class ChainTimeout(TransportFailure):
    """The chain did not answer in time"""
    pass


class ProfilingFailure(OrchestratorError):
    """A profiler could not record an observation; never aborts a batch"""

    def __init__(self, message: str, profiler: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.profiler = profiler


class InvalidPayload(OrchestratorError):
    """Operation payload could not be serialized"""
    pass


class StoreError(OrchestratorError):
    """Contract binary could not be read"""
    pass


class ConfigError(OrchestratorError):
    """Configuration document is missing keys or has invalid values"""
    pass
