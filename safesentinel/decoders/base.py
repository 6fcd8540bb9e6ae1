"""Decoder interface and the records decoders produce."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional

from ..models import Severity


@dataclass
class DecodedParam:
    name: str
    type: str
    value: Any


@dataclass
class DecodedFunction:
    name: str
    signature: str
    parameters: List[DecodedParam]
    explanation: str
    warnings: List[str] = field(default_factory=list)
    risk_level: Severity = Severity.NONE


@dataclass
class DecodedCall:
    main: DecodedFunction
    nested: List[DecodedFunction] = field(default_factory=list)
    is_multicall: bool = False
    general_warnings: List[str] = field(default_factory=list)


class ContractDecoder(ABC):
    """
    Protocol-specific decoder for one contract.

    Subclasses set ``contract_address`` and ``contract_name``; ``network`` is
    None for a decoder that applies on every network.
    """

    contract_address: str = ""
    contract_name: str = ""
    network: Optional[str] = None

    def can_decode(self, to: str, data: str) -> bool:
        # selector plus at least one byte of arguments
        return bool(to) and to.lower() == self.contract_address.lower() and len(data or "") > 10

    @abstractmethod
    def decode(self, data: str) -> DecodedCall:
        """Decode calldata. May raise; the registry turns failures into None."""

    @abstractmethod
    def supported_functions(self) -> List[str]:
        ...
