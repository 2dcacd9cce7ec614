"""Orchestrator Module

Sequences contract operations against a chain:

- ContractRegistry: contract name -> code id and instance addresses
- Store, Instantiate, Execute, Query, Migrate: typed operation requests
- Orchestrator: fail-fast sequential batch processing with profiling
"""

from .registry import (
    ContractRegistry,
    ContractInstance,
    DeployInfo,
    Resolution,
    ResolutionStatus
)

from .operations import (
    Store,
    Instantiate,
    Execute,
    Query,
    Migrate,
    Operation,
    OperationResult,
    BatchResult
)

from .orchestrator import Orchestrator

__all__ = [
    'ContractRegistry',
    'ContractInstance',
    'DeployInfo',
    'Resolution',
    'ResolutionStatus',
    'Store',
    'Instantiate',
    'Execute',
    'Query',
    'Migrate',
    'Operation',
    'OperationResult',
    'BatchResult',
    'Orchestrator'
]
