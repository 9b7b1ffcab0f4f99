"""
Authcraft Capabilities - Faults

Configuration-time faults raised by the registry and the binder.
CONFIG/REGISTRY faults are fatal: a process must not start with a
misconfigured capability set.
"""

from __future__ import annotations

from typing import Any, Iterable

from ..faults import Fault, FaultDomain, Severity


class CapabilityFault(Fault):
    """Base class for capability registry/binder faults."""
    domain = FaultDomain.CONFIG
    severity = Severity.FATAL


class UnknownCapability(CapabilityFault):
    """One or more requested capability names are not registered."""
    code = "CAP_001"
    message = "Unknown capability"

    def __init__(self, names: Iterable[str], **kwargs: Any):
        self.names = tuple(sorted(names))
        super().__init__(
            message=f"Unknown capability: {', '.join(self.names)}",
            metadata={"names": list(self.names)},
            **kwargs,
        )


class DuplicateCapability(CapabilityFault):
    """A capability with this name is already registered."""
    code = "CAP_002"
    message = "Capability already registered"
    domain = FaultDomain.REGISTRY

    def __init__(self, name: str, **kwargs: Any):
        self.name = name
        super().__init__(
            message=f"Capability already registered: {name}",
            metadata={"name": name},
            **kwargs,
        )


class AlreadyBound(CapabilityFault):
    """The entity type already declared its capabilities."""
    code = "CAP_003"
    message = "Entity type already bound"

    def __init__(self, entity_type: type, **kwargs: Any):
        self.entity_type = entity_type
        super().__init__(
            message=f"Capabilities already bound on {entity_type.__qualname__}",
            metadata={"entity_type": entity_type.__qualname__},
            **kwargs,
        )


class MissingOption(CapabilityFault):
    """Option lookup for a capability/key pair that does not exist."""
    code = "CAP_004"
    message = "Missing capability option"

    def __init__(self, capability: str, key: str, **kwargs: Any):
        self.capability = capability
        self.key = key
        super().__init__(
            message=f"Capability {capability!r} has no option {key!r}",
            metadata={"capability": capability, "key": key},
            **kwargs,
        )


class UnknownOption(CapabilityFault):
    """Override key not recognized by the targeted capability."""
    code = "CAP_005"
    message = "Unknown capability option"

    def __init__(self, key: str, capability: str | None = None, reason: str | None = None, **kwargs: Any):
        self.key = key
        self.capability = capability
        target = f" for capability {capability!r}" if capability else ""
        detail = f" ({reason})" if reason else ""
        super().__init__(
            message=f"Unknown option {key!r}{target}{detail}",
            metadata={"key": key, "capability": capability},
            **kwargs,
        )


class CapabilityNotActive(CapabilityFault):
    """A behavior was used on an entity type that did not bind it."""
    code = "CAP_006"
    message = "Capability not active"
    severity = Severity.ERROR

    def __init__(self, capability: str, entity_type: type | None = None, **kwargs: Any):
        self.capability = capability
        owner = f" on {entity_type.__qualname__}" if entity_type is not None else ""
        super().__init__(
            message=f"Capability {capability!r} is not active{owner}",
            metadata={"capability": capability},
            **kwargs,
        )


class InvalidOption(CapabilityFault):
    """Option value rejected by the behavior it configures."""
    code = "CAP_009"
    message = "Invalid capability option"

    def __init__(self, key: str, value: Any, reason: str, **kwargs: Any):
        self.key = key
        self.value = value
        super().__init__(
            message=f"Invalid value {value!r} for option {key!r}: {reason}",
            metadata={"key": key},
            **kwargs,
        )
