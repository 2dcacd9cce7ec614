from typing import Dict, List, Any, Optional, Tuple
import logging
from dataclasses import dataclass, field
from enum import Enum

from ..errors import AmbiguousInstance, UnknownContract, UnknownInstance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContractInstance:
    """One instantiated copy of a stored contract"""
    label: Optional[str]
    address: str


@dataclass
class DeployInfo:
    """Code id and instances registered for a contract name"""
    code_id: int
    instances: List[ContractInstance] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code_id': self.code_id,
            'instances': [{'label': i.label, 'address': i.address} for i in self.instances]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DeployInfo':
        return cls(
            code_id=int(data['code_id']),
            instances=[ContractInstance(i.get('label'), i['address'])
                       for i in data.get('instances', [])]
        )


class ResolutionStatus(Enum):
    FOUND = "FOUND"
    NOT_FOUND = "NOT_FOUND"
    AMBIGUOUS = "AMBIGUOUS"


@dataclass(frozen=True)
class Resolution:
    """Outcome of an address lookup"""
    status: ResolutionStatus
    address: Optional[str] = None
    candidates: Tuple[Optional[str], ...] = ()

    @property
    def found(self) -> bool:
        return self.status == ResolutionStatus.FOUND


class ContractRegistry:
    """Maps contract names to chain assigned code ids and addresses.

    Re-storing a name replaces its code id but keeps every address already
    registered for it. Those instances still run the old code; callers who
    reuse a name across code versions accept that mismatch.
    """

    def __init__(self, code_ids: Optional[Dict[str, int]] = None):
        self.contracts: Dict[str, DeployInfo] = {}
        for name, code_id in (code_ids or {}).items():
            self.contracts[name] = DeployInfo(code_id=int(code_id))

    def register_code(self, name: str, code_id: int):
        """Insert or overwrite the code id for a contract name"""
        info = self.contracts.get(name)
        if info is None:
            self.contracts[name] = DeployInfo(code_id=code_id)
        else:
            if info.instances and info.code_id != code_id:
                logger.warning(
                    f"Contract {name} re-registered with code id {code_id}; "
                    f"{len(info.instances)} existing instance(s) still run code id {info.code_id}"
                )
            info.code_id = code_id
        logger.info(f"Contract {name} registered with code id {code_id}")

    def register_address(self, name: str, label: Optional[str], address: str):
        """Append an instance address to a stored contract"""
        info = self.contracts.get(name)
        if info is None:
            raise UnknownContract(name)
        info.instances.append(ContractInstance(label=label, address=address))
        logger.info(f"Contract {name} instance {label!r} registered at {address}")

    def resolve_code(self, name: str) -> int:
        info = self.contracts.get(name)
        if info is None:
            raise UnknownContract(name)
        return info.code_id

    def lookup_address(self, name: str, label: Optional[str] = None) -> Resolution:
        """Find an instance address without raising for missing instances.

        With a label, the most recently registered instance carrying it is
        returned. Without one, a sole instance is returned and several are
        reported as ambiguous. Raises UnknownContract if the name was never
        stored.
        """
        info = self.contracts.get(name)
        if info is None:
            raise UnknownContract(name)

        if label is not None:
            matches = [i for i in info.instances if i.label == label]
            if not matches:
                return Resolution(ResolutionStatus.NOT_FOUND)
            return Resolution(ResolutionStatus.FOUND, address=matches[-1].address)

        if not info.instances:
            return Resolution(ResolutionStatus.NOT_FOUND)
        if len(info.instances) == 1:
            return Resolution(ResolutionStatus.FOUND, address=info.instances[0].address)
        return Resolution(ResolutionStatus.AMBIGUOUS,
                          candidates=tuple(i.label for i in info.instances))

    def resolve_address(self, name: str, label: Optional[str] = None) -> str:
        resolution = self.lookup_address(name, label)
        if resolution.status == ResolutionStatus.FOUND:
            return resolution.address
        if resolution.status == ResolutionStatus.AMBIGUOUS:
            raise AmbiguousInstance(name, list(resolution.candidates))
        raise UnknownInstance(name, label)

    def instances(self, name: str) -> List[ContractInstance]:
        """Registered instances for a name, in registration order"""
        info = self.contracts.get(name)
        if info is None:
            raise UnknownContract(name)
        return list(info.instances)

    def contract_names(self) -> List[str]:
        return list(self.contracts.keys())

    def deploy_info(self) -> Dict[str, DeployInfo]:
        return {
            name: DeployInfo(info.code_id, list(info.instances))
            for name, info in self.contracts.items()
        }

    def __contains__(self, name: str) -> bool:
        return name in self.contracts

    def __len__(self) -> int:
        return len(self.contracts)

    def to_dict(self) -> Dict[str, Any]:
        return {name: info.to_dict() for name, info in self.contracts.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ContractRegistry':
        registry = cls()
        for name, info in data.items():
            registry.contracts[name] = DeployInfo.from_dict(info)
        return registry

    def __repr__(self) -> str:
        return f"ContractRegistry({self.to_dict()!r})"
