from .base import ContractDecoder, DecodedCall, DecodedFunction, DecodedParam
from .lockstake import LockstakeEngineDecoder
from .registry import DecoderRegistry, default_registry

__all__ = [
    "ContractDecoder",
    "DecodedCall",
    "DecodedFunction",
    "DecodedParam",
    "DecoderRegistry",
    "LockstakeEngineDecoder",
    "default_registry",
]
