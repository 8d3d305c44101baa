"""Request-charge accounting for migration operations.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any


@dataclass
class OperationCost:
    """Running total of request units consumed by one logical operation.

    A bulk operation accumulates the charge of every remote call it makes,
    whether the call succeeded or not, together with per-document outcome
    counters.
    """

    operation: str = ""
    charge: float = 0.0
    document_count: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)
    start_time: float | None = None
    end_time: float | None = None

    def start(self) -> OperationCost:
        """Mark the operation as started.

        Returns:
            Self for chaining
        """
        self.start_time = time.time()
        return self

    def finish(self) -> OperationCost:
        """Mark the operation as finished.

        Returns:
            Self for chaining
        """
        self.end_time = time.time()
        return self

    @property
    def duration(self) -> float:
        """Operation duration in seconds, or 0 if not started."""
        if self.start_time is None:
            return 0.0

        end = self.end_time if self.end_time else time.time()
        return end - self.start_time

    @property
    def has_errors(self) -> bool:
        return self.failed > 0 or len(self.errors) > 0

    def add(self, charge: float | None) -> OperationCost:
        """Add the charge reported by one remote call."""
        if charge:
            self.charge += charge
        return self

    def record_success(self) -> OperationCost:
        self.succeeded += 1
        return self

    def record_skip(self) -> OperationCost:
        self.skipped += 1
        return self

    def record_failure(
        self,
        error: str,
        document_id: str | None = None,
        status_code: int | None = None,
    ) -> OperationCost:
        """Record a failed per-document call.

        Args:
            error: Error message reported by the store
            document_id: Optional ID of the failed document
            status_code: Optional status code reported by the store

        Returns:
            Self for chaining
        """
        self.failed += 1
        self.errors.append({
            "error": error,
            "document_id": document_id,
            "status_code": status_code,
            "timestamp": time.time(),
        })
        return self

    def merge(self, other: OperationCost) -> OperationCost:
        """Fold the charge and counters of a sub-operation into this one.

        Document counts are not merged; the outer operation owns its own count.
        """
        self.charge += other.charge
        self.succeeded += other.succeeded
        self.failed += other.failed
        self.skipped += other.skipped
        self.errors.extend(other.errors)
        return self

    def get_summary(self) -> str:
        return (
            f"{self.operation} with documents count {self.document_count} "
            f"cost {self.charge:g} RUs."
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "charge": self.charge,
            "document_count": self.document_count,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "duration": self.duration,
            "errors": self.errors,
            "has_errors": self.has_errors,
        }

    def log_fields(self) -> dict[str, Any]:
        """Structured fields for the completion log event."""
        return {
            "operation": self.operation,
            "document_count": self.document_count,
            "total_charge": self.charge,
        }

    def __str__(self) -> str:
        return self.get_summary()
