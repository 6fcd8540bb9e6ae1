"""Records passed between the hash calculator, decoder, verifier and analyzer."""

from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

from .constants import ZERO_ADDRESS


class Operation(IntEnum):
    """Safe ``Enum.Operation``."""
    CALL = 0
    DELEGATE_CALL = 1

    @classmethod
    def describe(cls, op: int) -> str:
        if op == cls.CALL:
            return "Call"
        if op == cls.DELEGATE_CALL:
            return "DelegateCall"
        return "Unknown"


class Severity(str, Enum):
    NONE = "none"
    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        # info carries no risk of its own
        return {"none": 0, "info": 0, "low": 1, "medium": 2, "high": 3, "critical": 4}[self.value]


def _int(v: Any) -> int:
    if v is None or v == "":
        return 0
    if isinstance(v, str) and v.lower().startswith("0x"):
        return int(v, 16)
    return int(v)


@dataclass(frozen=True)
class SafeTx:
    """The ``execTransaction`` parameters that are signed over."""
    to: str
    value: int = 0
    data: str = "0x"
    operation: int = Operation.CALL
    safe_tx_gas: int = 0
    base_gas: int = 0
    gas_price: int = 0
    gas_token: str = ZERO_ADDRESS
    refund_receiver: str = ZERO_ADDRESS
    nonce: int = 0

    @classmethod
    def from_dict(cls, d: Dict) -> "SafeTx":
        """Build from a Safe Transaction Service record (camelCase, string numerics)."""
        return cls(
            to=d["to"],
            value=_int(d.get("value")),
            data=d.get("data") or "0x",
            operation=int(d.get("operation") or 0),
            safe_tx_gas=_int(d.get("safeTxGas")),
            base_gas=_int(d.get("baseGas")),
            gas_price=_int(d.get("gasPrice")),
            gas_token=d.get("gasToken") or ZERO_ADDRESS,
            refund_receiver=d.get("refundReceiver") or ZERO_ADDRESS,
            nonce=_int(d.get("nonce")),
        )


@dataclass(frozen=True)
class SubCall:
    operation: int
    to: str
    value: int
    data: str


@dataclass(frozen=True)
class HashTriple:
    domain_hash: str
    message_hash: str
    safe_tx_hash: str


@dataclass
class VerificationResult:
    verified: bool
    error: Optional[str] = None
    reencoded: Optional[str] = None


# ---------------------------- Security results ----------------------------

@dataclass
class DelegateCallCheck:
    is_delegate_call: bool
    is_trusted: bool
    target_address: Optional[str] = None
    warning: Optional[str] = None
    warning_level: Optional[Severity] = None

    @property
    def severity(self) -> Severity:
        return self.warning_level or Severity.NONE


@dataclass
class GasTokenCheck:
    uses_custom_gas_token: bool
    uses_custom_refund_receiver: bool
    has_non_zero_gas_price: bool
    gas_token: str
    refund_receiver: str
    gas_price: int
    risk_level: Severity
    warnings: List[str] = field(default_factory=list)

    @property
    def severity(self) -> Severity:
        return self.risk_level


@dataclass
class OwnerModificationDetection:
    function_name: str
    depth: int

    @property
    def is_nested(self) -> bool:
        return self.depth > 0


@dataclass
class OwnerModificationCheck:
    modifies_owners: bool
    modifications: List[OwnerModificationDetection]
    warning_level: Severity
    warning: Optional[str] = None
    truncated: bool = False

    @property
    def severity(self) -> Severity:
        return self.warning_level


@dataclass
class ModuleGuardDetection:
    kind: str                 # "module" or "guard"
    function_name: str
    is_trusted: bool
    depth: int
    target_address: Optional[str] = None

    @property
    def is_nested(self) -> bool:
        return self.depth > 0


@dataclass
class ModuleGuardCheck:
    has_module_operation: bool
    has_guard_operation: bool
    detections: List[ModuleGuardDetection]
    warning_level: Severity
    warnings: List[str] = field(default_factory=list)
    truncated: bool = False

    @property
    def severity(self) -> Severity:
        return self.warning_level


@dataclass
class RiskVerdict:
    delegate_call: DelegateCallCheck
    gas_token: GasTokenCheck
    owner_modification: OwnerModificationCheck
    module_guard: ModuleGuardCheck
    overall_risk: Severity
    requires_careful_review: bool

    def to_dict(self) -> Dict:
        return to_jsonable(self)


def to_jsonable(obj: Any) -> Any:
    """Dataclass tree to plain JSON types, with enums flattened and nesting flags exported."""
    if is_dataclass(obj):
        out = {f.name: to_jsonable(getattr(obj, f.name)) for f in fields(obj)}
        if hasattr(obj, "is_nested"):
            out["is_nested"] = obj.is_nested
        return out
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, dict):
        return {k: to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    return obj
