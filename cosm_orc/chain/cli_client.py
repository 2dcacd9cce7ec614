from typing import Dict, List, Any, Optional
import json
import logging
import os
import subprocess
import tempfile
import time

import requests

from ..config import ChainConfig
from ..errors import ChainRejected, ChainTimeout, InvalidPayload, TransportFailure
from .client import (
    ChainClient, ChainResponse, Coin, ExecResponse, InstantiateResponse,
    MigrateResponse, QueryResponse, StoreCodeResponse
)
from .keys import KeyKind, SigningKey

logger = logging.getLogger(__name__)

DEFAULT_INSTANCE_LABEL = "cosm-orc"
POLL_INTERVAL = 0.5

# stderr fragments that mean the node could not be reached at all
TRANSPORT_ERROR_MARKERS = (
    "connection refused",
    "no such host",
    "connection reset",
    "i/o timeout",
    "post failed",
)


def _decode_payload(payload: bytes) -> str:
    """Payloads travel as a command line argument, so they must be UTF-8 text"""
    try:
        return payload.decode('utf-8')
    except UnicodeDecodeError as e:
        raise InvalidPayload(f"payload is not valid UTF-8: {e}") from e


class CliChainClient(ChainClient):
    """Chain client driving a wasmd-compatible binary.

    Transactions are signed by the binary's keyring (--from key name), so no
    key material passes through this process unless import_key() is used.
    Block height polling talks to the Tendermint RPC endpoint directly.
    """

    def __init__(self, chain_cfg: ChainConfig, session: Optional[requests.Session] = None):
        self.cfg = chain_cfg
        self.session = session or requests.Session()

    # ------------------------------------------------------------------ tx

    def store(self, wasm: bytes, key: SigningKey) -> StoreCodeResponse:
        fd, path = tempfile.mkstemp(suffix=".wasm")
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(wasm)
            res = self._run(["tx", "wasm", "store", path] + self._tx_flags(key))
        finally:
            os.unlink(path)

        code_id = self._find_attribute(res, "store_code", "code_id")
        if code_id is None:
            raise ChainRejected("store_code event missing from chain response",
                                raw_log=res.get("raw_log"))

        logger.info(f"Stored code id {code_id} (gas used {res.get('gas_used')})")
        return StoreCodeResponse(
            code_id=int(code_id),
            res=self._chain_response(res),
            tx_hash=res.get("txhash", ""),
            height=int(res.get("height", 0) or 0)
        )

    def instantiate(self, code_id: int, payload: bytes, funds: List[Coin], key: SigningKey,
                    label: Optional[str] = None, admin: Optional[str] = None) -> InstantiateResponse:
        args = ["tx", "wasm", "instantiate", str(code_id), _decode_payload(payload),
                "--label", label or DEFAULT_INSTANCE_LABEL]
        args += ["--admin", admin] if admin else ["--no-admin"]
        args += self._funds_flags(funds)
        res = self._run(args + self._tx_flags(key))

        address = self._find_attribute(res, "instantiate", "_contract_address")
        if address is None:
            raise ChainRejected("instantiate event missing from chain response",
                                raw_log=res.get("raw_log"))

        return InstantiateResponse(
            address=address,
            res=self._chain_response(res),
            tx_hash=res.get("txhash", ""),
            height=int(res.get("height", 0) or 0)
        )

    def execute(self, address: str, payload: bytes, funds: List[Coin],
                key: SigningKey) -> ExecResponse:
        args = ["tx", "wasm", "execute", address, _decode_payload(payload)]
        args += self._funds_flags(funds)
        res = self._run(args + self._tx_flags(key))
        return ExecResponse(
            res=self._chain_response(res),
            tx_hash=res.get("txhash", ""),
            height=int(res.get("height", 0) or 0)
        )

    def query(self, address: str, payload: bytes) -> QueryResponse:
        res = self._run([
            "query", "wasm", "contract-state", "smart", address, _decode_payload(payload),
            "--node", self.cfg.rpc_endpoint, "--output", "json"
        ])
        # wasm queries are free
        return QueryResponse(res=ChainResponse(
            data=json.dumps(res.get("data")).encode('utf-8')
        ))

    def migrate(self, address: str, new_code_id: int, payload: bytes,
                key: SigningKey) -> MigrateResponse:
        res = self._run(["tx", "wasm", "migrate", address, str(new_code_id),
                         _decode_payload(payload)] + self._tx_flags(key))
        return MigrateResponse(
            res=self._chain_response(res),
            tx_hash=res.get("txhash", ""),
            height=int(res.get("height", 0) or 0)
        )

    def import_key(self, key: SigningKey):
        """Recover a mnemonic credential into the binary's keyring"""
        if key.kind != KeyKind.MNEMONIC:
            raise ValueError(f"key {key.name!r} has no mnemonic to import")

        args = ["keys", "add", key.name, "--recover", "--hd-path", key.derivation_path]
        self._exec(args + self._keyring_flags(), stdin=key.mnemonic + "\n")
        logger.info(f"Imported key {key.name} into {self.cfg.binary} keyring")

    def has_key(self, name: str) -> bool:
        try:
            self._exec(["keys", "show", name] + self._keyring_flags(), log_errors=False)
        except ChainRejected:
            return False
        return True

    def ensure_key(self, key: SigningKey) -> bool:
        """Import a mnemonic key unless the keyring already has that name.

        Returns True if the key was imported. Keyring-only keys are left alone.
        """
        if key.kind != KeyKind.MNEMONIC or self.has_key(key.name):
            return False
        self.import_key(key)
        return True

    # -------------------------------------------------------------- blocks

    def latest_block_height(self) -> int:
        url = f"{self.cfg.rpc_endpoint.rstrip('/')}/status"
        try:
            response = self.session.get(url, timeout=self.cfg.timeout)
            response.raise_for_status()
            return int(response.json()["result"]["sync_info"]["latest_block_height"])
        except requests.Timeout as e:
            raise ChainTimeout(f"timed out reading {url}") from e
        except requests.RequestException as e:
            raise TransportFailure(f"error reading {url}: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise TransportFailure(f"malformed status response from {url}") from e

    def poll_for_n_blocks(self, n: int, timeout: float, is_first_block: bool = False):
        deadline = time.monotonic() + timeout

        if is_first_block:
            # fresh test nodes fail status requests until the first block lands
            while True:
                try:
                    current = self.latest_block_height()
                    break
                except TransportFailure:
                    if time.monotonic() >= deadline:
                        raise ChainTimeout(f"no block produced within {timeout}s")
                    time.sleep(POLL_INTERVAL)
        else:
            current = self.latest_block_height()

        target = current + n
        while current < target:
            if time.monotonic() >= deadline:
                raise ChainTimeout(f"waited {timeout}s for {n} blocks, reached height {current}")
            time.sleep(POLL_INTERVAL)
            current = self.latest_block_height()

    # ------------------------------------------------------------ helpers

    def _tx_flags(self, key: SigningKey) -> List[str]:
        flags = [
            "--gas-prices", f"{self.cfg.gas_prices}{self.cfg.denom}",
            "--gas", "auto",
            "--gas-adjustment", str(self.cfg.gas_adjustment),
            "-b", self.cfg.broadcast_mode,
            "--chain-id", self.cfg.chain_id,
            "--node", self.cfg.rpc_endpoint,
            "--from", key.name,
            "--output", "json",
            "-y",
        ]
        return flags + self._keyring_flags()

    def _keyring_flags(self) -> List[str]:
        if self.cfg.keyring_backend:
            return ["--keyring-backend", self.cfg.keyring_backend]
        return []

    @staticmethod
    def _funds_flags(funds: List[Coin]) -> List[str]:
        if not funds:
            return []
        return ["--amount", ",".join(str(c) for c in funds)]

    def _exec(self, args: List[str], stdin: Optional[str] = None, log_errors: bool = True) -> str:
        cmd = [self.cfg.binary] + args
        logger.debug(f"Running {' '.join(cmd[:4])} ...")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True,
                                    input=stdin, timeout=self.cfg.timeout)
        except subprocess.TimeoutExpired as e:
            raise ChainTimeout(f"{self.cfg.binary} {args[0]} timed out after {self.cfg.timeout}s") from e
        except OSError as e:
            raise TransportFailure(f"cannot run {self.cfg.binary}: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.strip()
            if log_errors:
                logger.error(stderr)
            if any(marker in stderr.lower() for marker in TRANSPORT_ERROR_MARKERS):
                raise TransportFailure(stderr)
            raise ChainRejected(stderr or f"{self.cfg.binary} exited with {result.returncode}",
                                code=result.returncode, raw_log=stderr)
        return result.stdout

    def _run(self, args: List[str]) -> Dict[str, Any]:
        stdout = self._exec(args)
        try:
            res = json.loads(stdout)
        except ValueError as e:
            raise TransportFailure(f"unparseable response from {self.cfg.binary}") from e

        code = res.get("code")
        if isinstance(code, int) and code != 0:
            raw_log = res.get("raw_log", "")
            logger.error(raw_log)
            raise ChainRejected(f"error processing message on chain: {raw_log}",
                                code=code, raw_log=raw_log)
        return res

    @staticmethod
    def _chain_response(res: Dict[str, Any]) -> ChainResponse:
        data = res.get("data")
        return ChainResponse(
            code=int(res.get("code", 0) or 0),
            data=data.encode('utf-8') if isinstance(data, str) and data else None,
            log=res.get("raw_log", ""),
            gas_wanted=int(res.get("gas_wanted", 0) or 0),
            gas_used=int(res.get("gas_used", 0) or 0)
        )

    @staticmethod
    def _find_attribute(res: Dict[str, Any], event_type: str, key: str) -> Optional[str]:
        """Search tx events (both the legacy logs layout and the flat one)"""
        events = []
        for log in res.get("logs") or []:
            events.extend(log.get("events") or [])
        events.extend(res.get("events") or [])

        for event in events:
            if event.get("type") != event_type:
                continue
            for attr in event.get("attributes") or []:
                if attr.get("key") == key:
                    return attr.get("value")
        return None
