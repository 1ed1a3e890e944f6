"""Per-call time budget for engine operations."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from .errors import OperationTimeout


@dataclass
class Deadline:
    """
    Monotonic deadline checked at every store round-trip.

    A ``Deadline`` with ``timeout=None`` never expires.
    """

    timeout: float | None = None
    operation: str = "operation"
    started: float = field(default_factory=time.monotonic)

    @property
    def remaining(self) -> float | None:
        if self.timeout is None:
            return None
        return max(0.0, self.timeout - (time.monotonic() - self.started))

    @property
    def expired(self) -> bool:
        return self.timeout is not None and self.remaining == 0.0

    def check(self) -> None:
        """Raise OperationTimeout if the budget is spent."""
        if self.expired:
            raise OperationTimeout(f"{self.operation} exceeded timeout of {self.timeout:.3f}s")
