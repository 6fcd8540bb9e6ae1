"""safesentinel: independent Safe multisig transaction hashing and risk checks."""

__version__ = "0.1.0"

from .errors import (
    AmbiguousTransaction,
    ApiErrorKind,
    DecodeNotApplicable,
    MalformedBinary,
    SafeApiError,
    UnsupportedVersion,
)
from .hashing import calculate_hashes, hashes_match
from .models import HashTriple, Operation, RiskVerdict, SafeTx, Severity, SubCall, VerificationResult
from .multisend import decode_batch, is_batch
from .security import analyze_security
from .verify import verify_decoded_claim
