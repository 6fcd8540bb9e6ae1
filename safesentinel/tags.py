"""Human-readable labels for well-known contract addresses."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .constants import MULTISEND_CALL_ONLY, SAFE_MIGRATION, SIGN_MESSAGE_LIB, TRUSTED_MODULES
from .decoders.lockstake import LOCKSTAKE_ENGINE


@dataclass(frozen=True)
class AddressTag:
    label: str
    description: str
    category: str     # safe-contract / protocol / token / other


def _builtin() -> Dict[str, AddressTag]:
    tags = {}
    for addresses, tag in (
        (MULTISEND_CALL_ONLY, AddressTag("MultiSendCallOnly", "Safe batching contract for multiple calls", "safe-contract")),
        (SAFE_MIGRATION, AddressTag("SafeMigration", "Safe contract migration library", "safe-contract")),
        (SIGN_MESSAGE_LIB, AddressTag("SignMessageLib", "Off-chain message signing library", "safe-contract")),
        (TRUSTED_MODULES, AddressTag("Allowance Module", "Spending limit module for Safe", "safe-contract")),
        ((LOCKSTAKE_ENGINE,), AddressTag("LockstakeEngine", "Sky Protocol staking and rewards contract", "protocol")),
    ):
        for a in addresses:
            tags[a.lower()] = tag
    return tags


class AddressBook:
    def __init__(self, tags: Optional[Dict[str, AddressTag]] = None):
        self._tags = _builtin()
        for address, tag in (tags or {}).items():
            self.register(address, tag)

    def get(self, address: Optional[str]) -> Optional[AddressTag]:
        if not address:
            return None
        return self._tags.get(address.lower())

    def has(self, address: Optional[str]) -> bool:
        return self.get(address) is not None

    def register(self, address: str, tag: AddressTag) -> None:
        self._tags[address.lower()] = tag

    def items(self) -> List[Tuple[str, AddressTag]]:
        return list(self._tags.items())

    def describe(self, address: str) -> str:
        """``address (Label)`` when the address is known, otherwise the address alone."""
        tag = self.get(address)
        return f"{address} ({tag.label})" if tag else address
