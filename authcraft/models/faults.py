"""
Authcraft Models - Faults

Request-scoped faults raised while mutating or persisting an entity.
"""

from __future__ import annotations

from typing import Any, Mapping

from ..faults import Fault, FaultDomain, Severity


class ValidationErrors(Fault):
    """Entity failed validation; ``errors`` maps field -> messages."""
    domain = FaultDomain.FLOW
    code = "ENTITY_001"
    message = "Validation failed"
    public_message = "Please review the problems below"
    severity = Severity.INFO

    def __init__(self, errors: Mapping[str, list[str]], **kwargs: Any):
        self.errors = {field: list(messages) for field, messages in errors.items()}
        super().__init__(
            message=f"Validation failed: {', '.join(sorted(self.errors))}",
            public=True,
            metadata={"fields": sorted(self.errors)},
            **kwargs,
        )


class StaleEntity(Fault):
    """Entity was saved by someone else since it was loaded."""
    domain = FaultDomain.IO
    code = "ENTITY_002"
    message = "Stale entity"
    public_message = "The record was changed by another request. Please try again."

    def __init__(self, entity_id: str | None, expected: int, actual: int, **kwargs: Any):
        super().__init__(
            message=f"Stale entity {entity_id}: version {expected} != {actual}",
            metadata={"entity_id": entity_id, "expected": expected, "actual": actual},
            **kwargs,
        )
