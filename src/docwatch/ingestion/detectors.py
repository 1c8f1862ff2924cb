"""Content fingerprinting utilities."""

from __future__ import annotations

import hashlib
from typing import Literal

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
_UINT32_MASK = 0xFFFFFFFF
_INT32_SIGN = 0x80000000


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    value = abs(value)
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return sign + "".join(reversed(digits))


def rolling_fingerprint(content: str) -> str:
    """Return a short, order-sensitive fingerprint of ``content``.

    Accumulates ``hash * 31 + code_point`` with signed 32-bit wraparound and
    renders the result in base 36. Collisions are possible; the value is only
    meant to flag probable content changes cheaply.

    Args:
        content: Text to fingerprint.

    Returns:
        str: Base-36 rendering of the signed 32-bit hash, ``"0"`` for empty input.
    """
    value = 0
    for char in content:
        value = (value * 31 + ord(char)) & _UINT32_MASK
    if value & _INT32_SIGN:
        value -= 1 << 32
    return _to_base36(value)


class HashComputer:
    """Compute content fingerprints with a configurable algorithm."""

    def __init__(self, algorithm: Literal["rolling", "sha256"] = "rolling") -> None:
        if algorithm not in ("rolling", "sha256"):
            raise ValueError(f"Unsupported fingerprint algorithm: {algorithm!r}")
        self.algorithm = algorithm

    def compute(self, content: str) -> str:
        """Return the fingerprint of ``content``."""
        if self.algorithm == "sha256":
            return hashlib.sha256(content.encode("utf-8")).hexdigest()
        return rolling_fingerprint(content)


__all__ = ["HashComputer", "rolling_fingerprint"]
