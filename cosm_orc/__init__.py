"""cosm-orc

Orchestrates CosmWasm smart contract operations against a chain and
profiles the gas each one consumes:

- Orchestrator: runs store / instantiate / execute / query / migrate
  operations in order, resolving contract names through a registry
- Profilers: observe every completed operation; the gas profiler groups
  usage per (contract, operation, kind) into a report store
- Reports: JSON export of grouped statistics and diffing between runs
- Chain: client interface plus a client driving a wasmd-style binary

Example:
    >>> from cosm_orc import Config, create_orchestrator, Store, Instantiate, Execute
    >>>
    >>> config = Config.from_yaml("config.yaml")
    >>> orc, key = create_orchestrator(config)
    >>>
    >>> batch = orc.process([
    ...     Store("cw20_base", "artifacts/cw20_base.wasm"),
    ...     Instantiate("cw20_base", {"name": "token"}, op_name="init"),
    ...     Execute("cw20_base", {"transfer": {}}, op_name="transfer"),
    ... ], key)
    >>> batch.raise_for_error()
    >>> orc.gas_report().save("gas_report.json")
"""

from typing import Optional, Tuple

from .errors import (
    OrchestratorError,
    ResolutionError,
    UnknownContract,
    UnknownInstance,
    AmbiguousInstance,
    ChainError,
    ChainRejected,
    TransportFailure,
    ChainTimeout,
    ProfilingFailure,
    InvalidPayload,
    StoreError,
    ConfigError
)
from .config import Config, ChainConfig
from .chain import ChainClient, CliChainClient, Coin, SigningKey
from .orchestrator import (
    Orchestrator,
    ContractRegistry,
    Store,
    Instantiate,
    Execute,
    Query,
    Migrate,
    BatchResult
)
from .profilers import (
    Profiler,
    GasProfiler,
    NullProfiler,
    LoggingProfiler,
    OperationKind,
    OperationRecord,
    Report,
    ReportStore,
    diff
)

__all__ = [
    # Errors
    'OrchestratorError',
    'ResolutionError',
    'UnknownContract',
    'UnknownInstance',
    'AmbiguousInstance',
    'ChainError',
    'ChainRejected',
    'TransportFailure',
    'ChainTimeout',
    'ProfilingFailure',
    'InvalidPayload',
    'StoreError',
    'ConfigError',

    # Configuration and chain
    'Config',
    'ChainConfig',
    'ChainClient',
    'CliChainClient',
    'Coin',
    'SigningKey',

    # Orchestration
    'Orchestrator',
    'ContractRegistry',
    'Store',
    'Instantiate',
    'Execute',
    'Query',
    'Migrate',
    'BatchResult',

    # Profiling
    'Profiler',
    'GasProfiler',
    'NullProfiler',
    'LoggingProfiler',
    'OperationKind',
    'OperationRecord',
    'Report',
    'ReportStore',
    'diff',

    'create_orchestrator'
]

__version__ = '1.0.0'


def create_orchestrator(config: Config, client: Optional[ChainClient] = None,
                        use_gas_profiler: bool = True) -> Tuple[Orchestrator, SigningKey]:
    """Create an orchestrator and signing key from configuration

    Args:
        config: Loaded configuration
        client: Chain client (defaults to a CliChainClient for config.chain_cfg)
        use_gas_profiler: Attach the default gas profiler

    A configured mnemonic is imported into the keyring of a CliChainClient
    if no key with that name exists yet.

    Returns:
        tuple: (Orchestrator seeded with config.code_ids, SigningKey)
    """
    if client is None:
        client = CliChainClient(config.chain_cfg)

    orchestrator = Orchestrator(
        client,
        registry=ContractRegistry(config.code_ids),
        use_gas_profiler=use_gas_profiler
    )
    key = SigningKey(name=config.key_name, mnemonic=config.mnemonic)
    if isinstance(client, CliChainClient):
        # transactions are signed by the binary's keyring
        client.ensure_key(key)
    return orchestrator, key
