"""Lookup of protocol decoders by contract address and network."""

import logging
import threading
from typing import Dict, List, Optional

from .base import ContractDecoder, DecodedCall

logger = logging.getLogger(__name__)


def _key(address: str, network: Optional[str] = None) -> str:
    a = address.lower()
    return f"{network}:{a}" if network else a


class DecoderRegistry:
    """
    Decoders keyed by contract address, optionally scoped to a network.

    ``register`` swaps in a new map under a lock; lookups read whichever map
    is current and never take the lock.
    """

    def __init__(self, decoders: Optional[List[ContractDecoder]] = None):
        self._lock = threading.Lock()
        self._decoders: Dict[str, ContractDecoder] = {}
        for d in decoders or []:
            self.register(d)

    def register(self, decoder: ContractDecoder) -> None:
        with self._lock:
            updated = dict(self._decoders)
            updated[_key(decoder.contract_address, decoder.network)] = decoder
            self._decoders = updated
        logger.debug("registered %s decoder for %s", decoder.contract_name, decoder.contract_address)

    def lookup(self, address: str, network: Optional[str] = None) -> Optional[ContractDecoder]:
        """Network-specific decoder first, then one registered for every network."""
        if not address:
            return None
        current = self._decoders
        if network:
            found = current.get(_key(address, network))
            if found is not None:
                return found
        return current.get(_key(address))

    get_decoder = lookup

    def has_decoder(self, address: str, network: Optional[str] = None) -> bool:
        return self.lookup(address, network) is not None

    @property
    def decoders(self) -> List[ContractDecoder]:
        return list(self._decoders.values())

    def decode(self, address: str, data: str, network: Optional[str] = None) -> Optional[DecodedCall]:
        decoder = self.lookup(address, network)
        if decoder is None or not decoder.can_decode(address, data):
            return None
        try:
            return decoder.decode(data)
        except Exception as e:
            logger.warning("Failed to decode transaction with %s decoder: %s", decoder.contract_name, e)
            return None


def default_registry() -> DecoderRegistry:
    from .lockstake import LockstakeEngineDecoder
    return DecoderRegistry([LockstakeEngineDecoder()])
