"""
Authcraft Recovery - Faults

Request-scoped faults raised by the recovery collaborators. The flow
controller turns every one of them into form errors.
"""

from __future__ import annotations

from typing import Any

from ..faults import Fault, FaultDomain, Severity


class NotFound(Fault):
    """Entity lookup found nothing."""
    domain = FaultDomain.IO
    code = "RECOVERY_001"
    message = "Entity not found"
    public_message = "not found"
    severity = Severity.INFO

    def __init__(self, lookup: str, value: str | None = None, **kwargs: Any):
        metadata = {"lookup": lookup}
        if value:
            metadata["value_hash"] = self._hash_identifier(value)
        super().__init__(metadata=metadata, **kwargs)


class DeliveryError(Fault):
    """Notifier could not deliver the recovery token."""
    domain = FaultDomain.IO
    code = "RECOVERY_002"
    message = "Recovery instructions could not be delivered"
    public_message = "We could not send the instructions right now. Please try again later."
    severity = Severity.ERROR

    def __init__(self, reason: str | None = None, *, transport: str = "unknown", **kwargs: Any):
        super().__init__(
            message=f"Delivery failed via {transport}: {reason}" if reason else None,
            retryable=True,
            metadata={"transport": transport},
            **kwargs,
        )


class SignInError(Fault):
    """Sign-in collaborator failed after the credential was replaced."""
    domain = FaultDomain.SECURITY
    code = "RECOVERY_003"
    message = "Sign-in after password reset failed"
    severity = Severity.ERROR

    def __init__(self, reason: str | None = None, **kwargs: Any):
        super().__init__(
            message=f"Sign-in after password reset failed: {reason}" if reason else None,
            **kwargs,
        )
