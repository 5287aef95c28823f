"""Basic refinery usage — refined values and where they come from.

Demonstrates:
  - The four construction disciplines
  - Interval propagation through arithmetic
  - Preservation rules and their proof certificates
  - Division by a refined non-zero divisor
"""

from __future__ import annotations

from refinery import (
    INT8,
    NonZeroInt,
    Op,
    PositiveInt,
    Refined,
    RefinementError,
    default_table,
    safe_divide,
    try_refine,
)
from refinery.errors import ArithmeticOverflowError
from refinery.predicates import Even, Interval, Positive

# ---------------------------------------------------------------------------
# 1. Construction disciplines
# ---------------------------------------------------------------------------

print("=== 1. Construction ===")
print(f"PositiveInt(42):          {PositiveInt(42)!r}")
print(f"try_refine(Positive, -1): {try_refine(Positive, -1)}")
try:
    PositiveInt(-1)
except RefinementError as exc:
    print(f"PositiveInt(-1):          {exc}")

ANSWER = PositiveInt.static(42)
print(f"static proof:             {ANSWER.proof}")
print()


# ---------------------------------------------------------------------------
# 2. Interval propagation
# ---------------------------------------------------------------------------

Small = Refined[Interval(3, 10), int]
Tiny = Refined[Interval(0, 5), int]

print("=== 2. Intervals ===")
total = Small(7) + Tiny(2)
print(f"Small(7) + Tiny(2) = {total!r}")

Byte = Refined.of(Interval(0, 127), INT8)
try:
    Byte(100) + Byte(100)
except ArithmeticOverflowError as exc:
    print(f"Byte(100) + Byte(100): {exc}")
print()


# ---------------------------------------------------------------------------
# 3. Preservation rules
# ---------------------------------------------------------------------------

print("=== 3. Preservation ===")
print(f"PositiveInt(2) * PositiveInt(3) = {PositiveInt(2) * PositiveInt(3)!r}")
print(f"PositiveInt(2) - PositiveInt(3) = {PositiveInt(2) - PositiveInt(3)!r}")

rule = default_table().register(Even, Op.ADD)
print(f"registered: {rule}  {rule.certificate if rule else ''}")
print()


# ---------------------------------------------------------------------------
# 4. Division
# ---------------------------------------------------------------------------

print("=== 4. Division ===")
print(f"safe_divide(10, NonZeroInt(2)) = {safe_divide(10, NonZeroInt(2))}")
try:
    NonZeroInt(0)
except RefinementError as exc:
    print(f"NonZeroInt(0): {exc}")
