"""Boolean combinators over predicates.

Each combinator is itself a :class:`~refinery.predicates.Predicate`, so a
composition can bind a refined value or key the preservation table::

    from refinery.combinators import All, Any, Not, If
    from refinery.predicates import Positive, Even

    All(Positive, Even)(4)     # True
    If(Even, Positive)(3)      # True (3 is not even)
    Positive & Even            # same as All(Positive, Even)

Operands are evaluated left to right and short-circuit. Since predicates are
pure, the order is unobservable.
"""

from __future__ import annotations

from collections.abc import Hashable

import z3

from .predicates import Predicate, predicate


def _lift(operands: tuple[object, ...]) -> tuple[Predicate, ...]:
    return tuple(predicate(p) for p in operands)  # type: ignore[arg-type]


def _encode_all(operands: tuple[Predicate, ...], var: object) -> list[object] | None:
    parts = []
    for p in operands:
        enc = p.to_z3(var)
        if enc is None:
            return None
        parts.append(enc)
    return parts


class All(Predicate):
    """Conjunction: true iff every operand holds (``All()`` is true)."""

    __slots__ = ("operands",)

    def __init__(self, *operands: object) -> None:
        self._init(operands=_lift(operands))

    def test(self, value: object) -> bool:
        return all(p(value) for p in self.operands)

    @property
    def key(self) -> tuple[Hashable, ...]:
        return ("All",) + tuple(p.key for p in self.operands)

    def to_z3(self, var: object) -> object:
        parts = _encode_all(self.operands, var)
        if parts is None:
            return None
        return z3.And(*parts) if parts else z3.BoolVal(True)

    def __repr__(self) -> str:
        return f"All({', '.join(map(repr, self.operands))})"


class Any(Predicate):
    """Disjunction: true iff some operand holds (``Any()`` is false)."""

    __slots__ = ("operands",)

    def __init__(self, *operands: object) -> None:
        self._init(operands=_lift(operands))

    def test(self, value: object) -> bool:
        return any(p(value) for p in self.operands)

    @property
    def key(self) -> tuple[Hashable, ...]:
        return ("Any",) + tuple(p.key for p in self.operands)

    def to_z3(self, var: object) -> object:
        parts = _encode_all(self.operands, var)
        if parts is None:
            return None
        return z3.Or(*parts) if parts else z3.BoolVal(False)

    def __repr__(self) -> str:
        return f"Any({', '.join(map(repr, self.operands))})"


class Not(Predicate):
    """Negation."""

    __slots__ = ("operand",)

    def __init__(self, operand: object) -> None:
        self._init(operand=predicate(operand))  # type: ignore[arg-type]

    def test(self, value: object) -> bool:
        return not self.operand(value)

    @property
    def key(self) -> tuple[Hashable, ...]:
        return ("Not", self.operand.key)

    def to_z3(self, var: object) -> object:
        enc = self.operand.to_z3(var)
        if enc is None:
            return None
        return z3.Not(enc)

    def __repr__(self) -> str:
        return f"Not({self.operand!r})"


class If(Predicate):
    """Material implication: false only when *premise* holds and *conclusion* does not."""

    __slots__ = ("premise", "conclusion")

    def __init__(self, premise: object, conclusion: object) -> None:
        self._init(
            premise=predicate(premise),  # type: ignore[arg-type]
            conclusion=predicate(conclusion),  # type: ignore[arg-type]
        )

    def test(self, value: object) -> bool:
        return not self.premise(value) or self.conclusion(value)

    @property
    def key(self) -> tuple[Hashable, ...]:
        return ("If", self.premise.key, self.conclusion.key)

    def to_z3(self, var: object) -> object:
        parts = _encode_all((self.premise, self.conclusion), var)
        if parts is None:
            return None
        return z3.Implies(parts[0], parts[1])

    def __repr__(self) -> str:
        return f"If({self.premise!r}, {self.conclusion!r})"
