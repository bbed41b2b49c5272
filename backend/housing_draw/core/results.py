"""Operation Results — success/failure envelope returned by every write.

Invariants:
    - success is True iff errors is empty
    - errors are record-level, human-readable, in the order they were found
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class OperationResult:
    success: bool
    record: Any = None
    errors: list[str] = field(default_factory=list)

    @classmethod
    def ok(cls, record: Any = None) -> "OperationResult":
        return cls(success=True, record=record)

    @classmethod
    def failed(cls, errors, record: Any = None) -> "OperationResult":
        return cls(success=False, record=record, errors=list(errors))

    def __bool__(self) -> bool:
        return self.success
