"""Chain Client Module

Boundary between the orchestrator and a ledger:

- ChainClient: interface the orchestrator calls (store, instantiate,
  execute, query, migrate, block polling)
- CliChainClient: drives a wasmd-compatible binary
- SigningKey: transaction signing credential
- Coin and the per-operation response types
"""

from .keys import SigningKey, KeyKind, DEFAULT_DERIVATION_PATH
from .client import (
    ChainClient,
    ChainResponse,
    Coin,
    StoreCodeResponse,
    InstantiateResponse,
    ExecResponse,
    QueryResponse,
    MigrateResponse
)
from .cli_client import CliChainClient

__all__ = [
    'SigningKey',
    'KeyKind',
    'DEFAULT_DERIVATION_PATH',
    'ChainClient',
    'ChainResponse',
    'Coin',
    'StoreCodeResponse',
    'InstantiateResponse',
    'ExecResponse',
    'QueryResponse',
    'MigrateResponse',
    'CliChainClient'
]
