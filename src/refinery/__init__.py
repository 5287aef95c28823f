"""Refinery — refined values with proved arithmetic.

Bind a raw value to a predicate that holds for as long as the value lives,
compose predicates, and carry interval refinements soundly through
arithmetic.

    from refinery import Refined, Interval, Positive, try_refine

    Small = Refined[Interval(3, 10), int]
    Tiny = Refined[Interval(0, 5), int]
    total = Small(7) + Tiny(2)      # Refined[Interval(3, 15), int64](9)

    try_refine(Positive, -1)        # None
    try_refine(Positive, 42)        # Refined[Positive, int64](42)

Preservation rules such as ``Positive + Positive -> Positive`` are proved
with z3 when registered; property tests can use :mod:`refinery.hypothesis`.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .arithmetic import (
    Op,
    checked_add,
    checked_div,
    checked_mod,
    checked_mul,
    checked_neg,
    checked_sub,
    sat_add,
    sat_mul,
    sat_neg,
    sat_sub,
)
from .combinators import All, Any, If, Not
from .engine import (
    ProofCertificate,
    Status,
    clear_cache,
    configure,
    prove_preservation,
    prove_value,
)
from .errors import ArithmeticOverflowError, PreservationError, RefinementError, StaticProofError
from .interval import add_intervals, mul_intervals, negate_interval, propagate, sub_intervals
from .numeric import (
    FLOAT32,
    FLOAT64,
    INT8,
    INT16,
    INT32,
    INT64,
    UINT8,
    UINT16,
    UINT32,
    UINT64,
    FloatType,
    IntType,
)
from .predicates import (
    Always,
    ApproxEqual,
    DivisibleBy,
    Empty,
    EqualTo,
    Even,
    Finite,
    GreaterOrEqual,
    GreaterThan,
    InHalfOpenRange,
    InOpenRange,
    InRange,
    Interval,
    IsInf,
    IsNaN,
    IsNormal,
    LessOrEqual,
    LessThan,
    Negative,
    Never,
    NonEmpty,
    NonNegative,
    NonPositive,
    NonZero,
    Normalized,
    NotEqualTo,
    NotNaN,
    Odd,
    Positive,
    PowerOfTwo,
    Predicate,
    SizeAtLeast,
    SizeAtMost,
    SizeExactly,
    SizeInRange,
    SizeInterval,
    Zero,
    is_interval,
    predicate,
)
from .preservation import PreservationRule, PreservationTable, default_table
from .refined import (
    ByteValue,
    FiniteFloat,
    NegativeInt,
    NonEmptyList,
    NonEmptyStr,
    NonNegativeFloat,
    NonNegativeInt,
    NonZeroInt,
    Percentage,
    PortNumber,
    PositiveFloat,
    PositiveInt,
    Probability,
    Refined,
    assume_valid,
    bounded_index,
    decrement,
    increment,
    refine,
    refined_abs,
    refined_binop,
    refined_clamp,
    refined_max,
    refined_min,
    refined_neg,
    safe_divide,
    safe_modulo,
    square,
    static_refine,
    try_refine,
)

__all__ = [
    # Wrapper
    "Refined",
    "refine",
    "try_refine",
    "assume_valid",
    "static_refine",
    # Operations
    "refined_binop",
    "refined_neg",
    "refined_abs",
    "refined_min",
    "refined_max",
    "refined_clamp",
    "square",
    "increment",
    "decrement",
    "safe_divide",
    "safe_modulo",
    # Aliases
    "PositiveInt",
    "NegativeInt",
    "NonNegativeInt",
    "NonZeroInt",
    "PositiveFloat",
    "NonNegativeFloat",
    "FiniteFloat",
    "Percentage",
    "Probability",
    "ByteValue",
    "PortNumber",
    "NonEmptyList",
    "NonEmptyStr",
    "bounded_index",
    # Predicates
    "Predicate",
    "predicate",
    "is_interval",
    "Positive",
    "Negative",
    "NonNegative",
    "NonPositive",
    "Zero",
    "NonZero",
    "GreaterThan",
    "GreaterOrEqual",
    "LessThan",
    "LessOrEqual",
    "EqualTo",
    "NotEqualTo",
    "InRange",
    "InOpenRange",
    "InHalfOpenRange",
    "Interval",
    "Even",
    "Odd",
    "DivisibleBy",
    "PowerOfTwo",
    "Empty",
    "NonEmpty",
    "SizeAtLeast",
    "SizeAtMost",
    "SizeExactly",
    "SizeInRange",
    "SizeInterval",
    "NotNaN",
    "IsNaN",
    "Finite",
    "IsInf",
    "IsNormal",
    "ApproxEqual",
    "Normalized",
    "Always",
    "Never",
    # Combinators
    "All",
    "Any",
    "Not",
    "If",
    # Arithmetic
    "Op",
    "sat_add",
    "sat_sub",
    "sat_mul",
    "sat_neg",
    "checked_add",
    "checked_sub",
    "checked_mul",
    "checked_neg",
    "checked_div",
    "checked_mod",
    "add_intervals",
    "sub_intervals",
    "mul_intervals",
    "negate_interval",
    "propagate",
    # Numeric types
    "IntType",
    "FloatType",
    "INT8",
    "INT16",
    "INT32",
    "INT64",
    "UINT8",
    "UINT16",
    "UINT32",
    "UINT64",
    "FLOAT32",
    "FLOAT64",
    # Preservation + proofs
    "PreservationRule",
    "PreservationTable",
    "default_table",
    "ProofCertificate",
    "Status",
    "prove_preservation",
    "prove_value",
    "clear_cache",
    "configure",
    # Errors
    "RefinementError",
    "ArithmeticOverflowError",
    "StaticProofError",
    "PreservationError",
    # Metadata
    "__version__",
]
