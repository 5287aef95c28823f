"""Exception types raised by refinery.

Every recoverable failure carries the offending value and a human-readable
description of the violated predicate, so callers can render their own
diagnostics from ``exc.value`` and ``exc.predicate``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .engine import ProofCertificate


class RefinementError(ValueError):
    """Raised when a value does not satisfy the predicate it is bound to.

    Attributes:
        value: The offending raw value.
        predicate: Description of the violated predicate.
    """

    def __init__(self, value: Any, predicate: str, message: str | None = None) -> None:
        self.value = value
        self.predicate = predicate
        if message is None:
            message = f"{value!r} does not satisfy {predicate}"
        self.message = message
        super().__init__(message)


class ArithmeticOverflowError(RefinementError, OverflowError):
    """Raised by checked arithmetic when a result leaves the base type's range.

    ``value`` is the exact (unwrapped) result and ``predicate`` names the
    representable range that was exceeded.
    """

    def __init__(self, value: Any, predicate: str, operation: str) -> None:
        self.operation = operation
        super().__init__(value, predicate, f"{operation}: {value!r} outside {predicate}")


class StaticProofError(RefinementError):
    """Raised when static-proof construction cannot establish the predicate.

    The failing :class:`~refinery.engine.ProofCertificate` is available
    as ``exc.certificate``.
    """

    def __init__(self, value: Any, predicate: str, certificate: ProofCertificate) -> None:
        self.certificate = certificate
        super().__init__(value, predicate, f"static proof failed: {certificate}")


class PreservationError(Exception):
    """Raised when a preservation rule is disproved at registration time."""

    def __init__(self, certificate: ProofCertificate) -> None:
        self.certificate = certificate
        super().__init__(str(certificate))
