from typing import Optional
from dataclasses import dataclass, field
from enum import Enum

DEFAULT_DERIVATION_PATH = "m/44'/118'/0'/0/0"


class KeyKind(Enum):
    KEYRING = "KEYRING"
    MNEMONIC = "MNEMONIC"


@dataclass
class SigningKey:
    """Credential used to sign transactions.

    A key is either a reference to an entry in the chain binary's keyring
    (name only) or carries the mnemonic words for that entry. Mnemonics are
    meant for test networks; never use one for mainnet funds.
    """
    name: str
    mnemonic: Optional[str] = field(default=None, repr=False)
    derivation_path: str = DEFAULT_DERIVATION_PATH

    @property
    def kind(self) -> KeyKind:
        return KeyKind.MNEMONIC if self.mnemonic else KeyKind.KEYRING
