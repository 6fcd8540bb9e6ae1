"""
Safe contract version handling.

Versions look like ``1.3.0`` or ``1.4.1+L2``; the ``+`` suffix never changes
the hashing rules so it is stripped before any comparison.
"""

from typing import List

from .constants import MIN_SAFE_VERSION
from .errors import UnsupportedVersion


def clean(version: str) -> str:
    """Drop anything from the first ``+`` onwards: ``1.3.0+L2`` -> ``1.3.0``."""
    return version.split("+")[0]


def _parts(version: str) -> List[int]:
    try:
        return [int(p) for p in clean(version).split(".")]
    except ValueError:
        raise UnsupportedVersion(f'Safe multisig version "{clean(version)}" is not a valid version string!')


def compare(a: str, b: str) -> int:
    """Component-wise comparison; missing components count as 0 so ``1.3 == 1.3.0``."""
    pa, pb = _parts(a), _parts(b)
    for i in range(max(len(pa), len(pb))):
        x = pa[i] if i < len(pa) else 0
        y = pb[i] if i < len(pb) else 0
        if x > y:
            return 1
        if x < y:
            return -1
    return 0


def gte(a: str, b: str) -> bool:
    return compare(a, b) >= 0


def lte(a: str, b: str) -> bool:
    return compare(a, b) <= 0


def lt(a: str, b: str) -> bool:
    return compare(a, b) < 0


def validate(version: str) -> None:
    if not version:
        raise UnsupportedVersion(
            "No Safe multisig contract found for the specified network. "
            "Please ensure that you have selected the correct network."
        )
    v = clean(version)
    if not gte(v, MIN_SAFE_VERSION):
        raise UnsupportedVersion(f'Safe multisig version "{v}" is not supported!')
