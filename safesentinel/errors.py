"""Error taxonomy shared by the core and the thin shell around it."""

from enum import Enum
from typing import Any, List, Optional


class UnsupportedVersion(ValueError):
    """The Safe version is empty or below the supported floor."""


class DecodeNotApplicable(ValueError):
    """Data is not a recognised batch shape; treat it as opaque."""


class MalformedBinary(DecodeNotApplicable):
    """A packed transaction walk ran past the end of the buffer."""


class ApiErrorKind(str, Enum):
    HTTP = "http"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    INVALID_RESPONSE = "invalid_response"


class SafeApiError(Exception):
    """
    Failure talking to the Safe Transaction Service.

    One error type for every failure mode, tagged by ``kind``; the HTTP status
    and raw payload ride along when there is one.
    """

    def __init__(self, message: str, kind: ApiErrorKind = ApiErrorKind.HTTP,
                 status_code: Optional[int] = None, response: Any = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.response = response

    @property
    def is_rate_limit(self) -> bool:
        return (self.kind == ApiErrorKind.RATE_LIMITED
                or self.status_code == 429
                or "rate limit" in str(self).lower())


class AmbiguousTransaction(SafeApiError):
    """Several transactions share a nonce and the caller did not pick one."""

    def __init__(self, message: str, candidates: List[dict]):
        super().__init__(message, kind=ApiErrorKind.INVALID_RESPONSE)
        self.candidates = candidates
