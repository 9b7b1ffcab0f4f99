"""
Authcraft Faults - Core types and fault taxonomy.

Defines:
- Fault base class (structured fault objects)
- FaultContext (runtime context wrapper used when logging faults)
- FaultDomain (explicit fault domains)
- Severity levels

Subsystem faults live next to their subsystem:
- authcraft.capabilities.faults: registry and binder faults
- authcraft.recovery.faults: recovery flow faults
"""

from __future__ import annotations

import hashlib
import sys
import time
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


# ============================================================================
# Severity & Domain
# ============================================================================

class Severity(str, Enum):
    """
    Fault severity levels.

    Determines logging level and whether the process may keep running.
    """
    INFO = "info"       # Informational, no action needed
    WARN = "warn"       # Warning, should be reviewed
    ERROR = "error"     # Error, immediate attention
    FATAL = "fatal"     # Fatal, unrecoverable, abort


class FaultDomain:
    """
    Fault domains (taxonomy).

    Identifies the functional area where a fault occurred.
    Subsystems may declare their own domains.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.value = name
        self.description = description

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain(name='{self.name}')"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.name)


# Standard Domains
FaultDomain.CONFIG = FaultDomain("config", "Capability declaration and configuration errors")
FaultDomain.REGISTRY = FaultDomain("registry", "Capability registry errors")
FaultDomain.FLOW = FaultDomain("flow", "Request handler errors")
FaultDomain.IO = FaultDomain("io", "Persistence and delivery collaborators")
FaultDomain.SECURITY = FaultDomain("security", "Security and auth")


# Domain defaults
DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: {"severity": Severity.FATAL, "retryable": False},
    FaultDomain.REGISTRY: {"severity": Severity.FATAL, "retryable": False},
    FaultDomain.FLOW: {"severity": Severity.ERROR, "retryable": False},
    FaultDomain.IO: {"severity": Severity.WARN, "retryable": True},
    FaultDomain.SECURITY: {"severity": Severity.WARN, "retryable": False},
}


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Base fault class - structured, typed fault object.

    A fault carries:
    - Stable machine-readable code
    - Human-readable message
    - Severity level
    - Domain classification
    - Retry semantics
    - Public exposure control

    Subclasses usually pin ``code``, ``message`` and ``domain`` as class
    attributes and only pass metadata at raise time.

    Example:
        ```python
        raise Fault(
            code="ENTITY_NOT_FOUND",
            message="No entity for identifier",
            domain=FaultDomain.IO,
            public=False,
        )
        ```
    """

    code: Optional[str] = None
    message: Optional[str] = None
    domain: Optional[FaultDomain] = None
    public_message: Optional[str] = None

    def __init__(
        self,
        code: str | None = None,
        message: str | None = None,
        *,
        domain: FaultDomain | None = None,
        severity: Optional[Severity] = None,
        retryable: Optional[bool] = None,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        # Fallback to class attributes if not provided
        self.code = code if code is not None else type(self).code
        self.message = message if message is not None else type(self).message
        self.domain = domain if domain is not None else type(self).domain

        if self.code is None or self.message is None or self.domain is None:
            raise TypeError(f"{self.__class__.__name__} missing required code, message, or domain")

        super().__init__(self.message)

        # Default to ERROR/non-retryable for custom domains
        defaults = DOMAIN_DEFAULTS.get(self.domain, {"severity": Severity.ERROR, "retryable": False})
        self.severity = severity or getattr(type(self), "severity", None) or defaults["severity"]
        self.retryable = retryable if retryable is not None else defaults["retryable"]

        self.public = public
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(code={self.code!r}, domain={self.domain.value}, "
            f"severity={self.severity.value}, public={self.public})"
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize fault to dictionary.

        Returns:
            Dictionary representation suitable for logging/serialization
        """
        return {
            "code": self.code,
            "message": self.message,
            "public_message": self.public_message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "public": self.public,
            "metadata": self.metadata,
        }

    @staticmethod
    def _hash_identifier(identifier: str) -> str:
        return hash_identifier(identifier)


# ============================================================================
# FaultContext - Runtime Context Wrapper
# ============================================================================

@dataclass(slots=True)
class FaultContext:
    """
    Runtime context wrapper for faults.

    Request handlers capture faults they recover from so the log line
    carries a trace id and the originating action.

    Attributes:
        fault: The underlying fault
        trace_id: Unique trace ID for this fault occurrence
        timestamp: When fault was captured
        action: Handler name (if fault occurred during a request)
        cause: Original exception (if fault wraps an exception)
        stack: Stack frames from fault origin
        metadata: Additional runtime metadata
    """

    fault: Fault
    trace_id: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    action: Optional[str] = None
    cause: Optional[BaseException] = None
    stack: list[Any] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def capture(
        cls,
        fault: Fault,
        *,
        action: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> FaultContext:
        """
        Capture fault with runtime context.

        Automatically extracts stack trace and generates trace ID.
        """
        trace_data = f"{fault.code}:{time.time_ns()}"
        trace_id = hashlib.sha256(trace_data.encode()).hexdigest()[:16]

        stack = []
        if cause is not None and cause.__traceback__ is not None:
            stack = traceback.extract_tb(cause.__traceback__)
        elif sys.exc_info()[2] is not None:
            stack = traceback.extract_tb(sys.exc_info()[2])

        return cls(
            fault=fault,
            trace_id=trace_id,
            action=action,
            cause=cause or fault.__cause__,
            stack=stack,
        )

    def fingerprint(self) -> str:
        """
        Stable fingerprint for grouping: hash(code + domain + action).

        Returns:
            16-character hex fingerprint
        """
        data = ":".join([
            self.fault.code,
            self.fault.domain.value,
            self.action or "",
        ])
        return hashlib.sha256(data.encode()).hexdigest()[:16]

    def to_dict(self) -> dict[str, Any]:
        return {
            "fault": self.fault.to_dict(),
            "trace_id": self.trace_id,
            "fingerprint": self.fingerprint(),
            "timestamp": self.timestamp.isoformat(),
            "action": self.action,
            "cause": str(self.cause) if self.cause else None,
            "stack_depth": len(self.stack),
            "metadata": self.metadata,
        }

    def __str__(self) -> str:
        scope = f"action={self.action}" if self.action else "global"
        return f"FaultContext[{self.trace_id}]({scope}): {self.fault}"


def hash_identifier(identifier: str) -> str:
    """Short digest of a user-supplied identifier, safe to log."""
    return hashlib.sha256(identifier.encode("utf-8", "surrogatepass")).hexdigest()[:12]
