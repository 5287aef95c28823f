"""Base numeric types for bound and checked arithmetic.

Python integers never overflow, so the representable range of a refined
value's base type is carried explicitly by a descriptor::

    from refinery.numeric import INT32, resolve_base

    INT32.max            # 2147483647
    resolve_base(int)    # INT64 (see ``configure(default_int=...)``)
"""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class IntType:
    """A fixed-width integer type.

    Attributes:
        name: Short name (``"int32"``).
        bits: Width in bits.
        signed: Two's-complement signed when ``True``.
    """

    name: str
    bits: int
    signed: bool = True

    @property
    def min(self) -> int:
        return -(1 << (self.bits - 1)) if self.signed else 0

    @property
    def max(self) -> int:
        return (1 << (self.bits - 1)) - 1 if self.signed else (1 << self.bits) - 1

    @property
    def zero(self) -> int:
        return 0

    def contains(self, value: Any) -> bool:
        if isinstance(value, bool) or not isinstance(value, int):
            return False
        return self.min <= value <= self.max

    def describe(self) -> str:
        return f"{self.name} range [{self.min}, {self.max}]"

    def __repr__(self) -> str:
        return self.name.upper()


@dataclass(frozen=True)
class FloatType:
    """An IEEE-754 floating-point type.

    ``max`` is the largest finite magnitude. Infinities and NaN are members
    of the type; only finite overflow is clamped or reported.
    """

    name: str
    max: float

    @property
    def min(self) -> float:
        return -self.max

    @property
    def zero(self) -> float:
        return 0.0

    def contains(self, value: Any) -> bool:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        v = float(value)
        return math.isnan(v) or math.isinf(v) or -self.max <= v <= self.max

    def describe(self) -> str:
        return f"{self.name} finite range [{self.min!r}, {self.max!r}]"

    def __repr__(self) -> str:
        return self.name.upper()


NumericType = Union[IntType, FloatType]

INT8 = IntType("int8", 8)
INT16 = IntType("int16", 16)
INT32 = IntType("int32", 32)
INT64 = IntType("int64", 64)
UINT8 = IntType("uint8", 8, signed=False)
UINT16 = IntType("uint16", 16, signed=False)
UINT32 = IntType("uint32", 32, signed=False)
UINT64 = IntType("uint64", 64, signed=False)
FLOAT32 = FloatType("float32", 3.4028234663852886e38)
FLOAT64 = FloatType("float64", sys.float_info.max)

NUMERIC_TYPES: dict[str, NumericType] = {
    t.name: t
    for t in (INT8, INT16, INT32, INT64, UINT8, UINT16, UINT32, UINT64, FLOAT32, FLOAT64)
}


def is_numeric(base: Any) -> bool:
    """``True`` iff *base* is a numeric descriptor (arithmetic is defined)."""
    return isinstance(base, (IntType, FloatType))


def resolve_base(base: Any) -> Any:
    """Map a Python type or type name to the base used by refined values.

    Args:
        base: A descriptor, a name from :data:`NUMERIC_TYPES`, ``int``,
            ``float``, or any other type (containers, strings, ...).

    Returns:
        A numeric descriptor for numeric bases; *base* unchanged otherwise.

    Raises:
        ValueError: If *base* is a string that names no numeric type.
    """
    if isinstance(base, (IntType, FloatType)):
        return base
    if isinstance(base, str):
        try:
            return NUMERIC_TYPES[base.lower()]
        except KeyError:
            raise ValueError(f"Unknown numeric type: {base!r}") from None
    if base is int:
        from .engine import _config

        return NUMERIC_TYPES[str(_config["default_int"])]
    if base is float:
        return FLOAT64
    return base


def base_name(base: Any) -> str:
    if isinstance(base, (IntType, FloatType)):
        return base.name
    return getattr(base, "__name__", repr(base))
