from typing import Dict, Any, Mapping, Optional
import logging
import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "GAS_"
ENV_NESTING = "__"

DEFAULT_BINARY = "wasmd"
DEFAULT_GAS_PRICES = 0.1
DEFAULT_GAS_ADJUSTMENT = 1.5
DEFAULT_BROADCAST_MODE = "block"
DEFAULT_TIMEOUT = 60.0


def parse_url(url: str) -> str:
    """Validate an endpoint url, defaulting to https when the scheme is missing"""
    if not url:
        raise ConfigError("empty endpoint url")
    if "://" not in url:
        url = f"https://{url}"

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https", "tcp"):
        raise ConfigError(f"unsupported url scheme: {parsed.scheme!r}")
    if not parsed.netloc:
        raise ConfigError(f"malformed url: {url!r}")
    return url


@dataclass
class ChainConfig:
    """Chain endpoint and fee settings"""
    denom: str
    chain_id: str
    rpc_endpoint: str
    binary: str = DEFAULT_BINARY
    gas_prices: float = DEFAULT_GAS_PRICES
    gas_adjustment: float = DEFAULT_GAS_ADJUSTMENT
    broadcast_mode: str = DEFAULT_BROADCAST_MODE
    keyring_backend: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ChainConfig':
        missing = [k for k in ('denom', 'chain_id', 'rpc_endpoint') if not data.get(k)]
        if missing:
            raise ConfigError(f"chain_cfg is missing required keys: {missing}")
        try:
            return cls(
                denom=str(data['denom']),
                chain_id=str(data['chain_id']),
                rpc_endpoint=parse_url(str(data['rpc_endpoint'])),
                binary=str(data.get('binary', DEFAULT_BINARY)),
                gas_prices=float(data.get('gas_prices', DEFAULT_GAS_PRICES)),
                gas_adjustment=float(data.get('gas_adjustment', DEFAULT_GAS_ADJUSTMENT)),
                broadcast_mode=str(data.get('broadcast_mode', DEFAULT_BROADCAST_MODE)),
                keyring_backend=data.get('keyring_backend'),
                timeout=float(data.get('timeout', DEFAULT_TIMEOUT))
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid chain_cfg value: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            'denom': self.denom,
            'chain_id': self.chain_id,
            'rpc_endpoint': self.rpc_endpoint,
            'binary': self.binary,
            'gas_prices': self.gas_prices,
            'gas_adjustment': self.gas_adjustment,
            'broadcast_mode': self.broadcast_mode,
            'keyring_backend': self.keyring_backend,
            'timeout': self.timeout
        }


@dataclass
class Config:
    """Orchestrator configuration"""
    chain_cfg: ChainConfig
    key_name: str
    # already stored code ids, used to resume against deployed contracts
    code_ids: Dict[str, int] = field(default_factory=dict)
    wasm_dir: Optional[str] = None
    mnemonic: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        if not isinstance(data, dict):
            raise ConfigError("configuration document must be a mapping")
        if not isinstance(data.get('chain_cfg'), dict):
            raise ConfigError("configuration is missing the chain_cfg section")
        if not data.get('key_name'):
            raise ConfigError("configuration is missing key_name")

        code_ids = data.get('code_ids') or {}
        if not isinstance(code_ids, dict):
            raise ConfigError("code_ids must be a mapping of contract name to code id")
        try:
            code_ids = {str(name): int(code_id) for name, code_id in code_ids.items()}
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid code id: {e}") from e

        return cls(
            chain_cfg=ChainConfig.from_dict(data['chain_cfg']),
            key_name=str(data['key_name']),
            code_ids=code_ids,
            wasm_dir=data.get('wasm_dir'),
            mnemonic=data.get('mnemonic')
        )

    @classmethod
    def from_yaml(cls, path: str, environ: Optional[Mapping[str, str]] = None) -> 'Config':
        """Load a YAML config file, then apply GAS_ prefixed environment overrides"""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"cannot read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: configuration document must be a mapping, "
                              f"got {type(data).__name__}")

        data = apply_env_overrides(data, os.environ if environ is None else environ)
        config = cls.from_dict(data)
        logger.info(f"Loaded config for chain {config.chain_cfg.chain_id} from {path}")
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            'chain_cfg': self.chain_cfg.to_dict(),
            'key_name': self.key_name,
            'code_ids': dict(self.code_ids),
            'wasm_dir': self.wasm_dir
        }


def apply_env_overrides(data: Dict[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    """Overlay GAS_* variables on a config dict.

    GAS_KEY_NAME sets key_name, GAS_CHAIN_CFG__RPC_ENDPOINT sets
    chain_cfg.rpc_endpoint. Values are parsed as YAML scalars.
    """
    if not isinstance(data, dict):
        raise ConfigError("configuration document must be a mapping")

    result = dict(data)
    for name, raw in environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        path = [p.lower() for p in name[len(ENV_PREFIX):].split(ENV_NESTING) if p]
        if not path:
            continue

        try:
            value = yaml.safe_load(raw)
        except yaml.YAMLError:
            value = raw

        target = result
        for part in path[:-1]:
            child = target.get(part)
            child = dict(child) if isinstance(child, dict) else {}
            target[part] = child
            target = child
        target[path[-1]] = value
        logger.debug(f"Config override from environment: {name}")
    return result
