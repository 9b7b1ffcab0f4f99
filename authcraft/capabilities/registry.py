"""
Authcraft Capabilities - Registry

Maps a capability name to the behavior class implementing it and to the
option names that behavior recognizes, with their defaults.

Registration happens once at import time (see ``builtins``); afterwards the
registry is only read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping

from .faults import CapabilityFault, DuplicateCapability, UnknownCapability

logger = logging.getLogger("authcraft.capabilities.registry")

BASELINE = "authenticable"


class UnmetRequirement(CapabilityFault):
    """A resolved capability requires another one that was not requested."""
    code = "CAP_007"
    message = "Capability requirement not met"

    def __init__(self, name: str, missing: Iterable[str], **kwargs: Any):
        self.name = name
        self.missing = tuple(sorted(missing))
        super().__init__(
            message=f"Capability {name!r} requires: {', '.join(self.missing)}",
            metadata={"name": name, "missing": list(self.missing)},
            **kwargs,
        )


@dataclass(frozen=True)
class BehaviorSpec:
    """
    Immutable description of one registered capability.

    Attributes:
        name: Unique capability name (e.g. "recoverable")
        defaults: Recognized option names with their default values
        implementation: Behavior class instantiated per bound entity type
        requires: Capability names that must be applied before this one
        position: Registration order, used as the stable sort key
    """
    name: str
    defaults: Mapping[str, Any]
    implementation: type
    requires: tuple[str, ...] = ()
    position: int = field(default=0, compare=False)

    def recognizes(self, key: str) -> bool:
        """Check if option key belongs to this capability."""
        return key in self.defaults


class CapabilityRegistry:
    """
    Registry of capability specs.

    ``resolve`` returns specs ordered so that every requirement precedes its
    dependents; with the built-ins this puts ``authenticable`` first.
    """

    def __init__(self):
        self._specs: dict[str, BehaviorSpec] = {}

    def register(
        self,
        name: str,
        defaults: Mapping[str, Any] | None,
        implementation: type,
        requires: Iterable[str] = (),
    ) -> BehaviorSpec:
        """
        Register a capability.

        Raises:
            DuplicateCapability: name already registered
        """
        if name in self._specs:
            raise DuplicateCapability(name)

        spec = BehaviorSpec(
            name=name,
            defaults=MappingProxyType(dict(defaults or {})),
            implementation=implementation,
            requires=tuple(requires),
            position=len(self._specs),
        )
        self._specs[name] = spec
        logger.debug("Registered capability %s (options: %s)", name, ", ".join(spec.defaults) or "-")
        return spec

    def get(self, name: str) -> BehaviorSpec:
        """Get spec by name."""
        try:
            return self._specs[name]
        except KeyError:
            raise UnknownCapability([name]) from None

    def names(self) -> tuple[str, ...]:
        """All registered names, in registration order."""
        return tuple(self._specs)

    def resolve(self, names: Iterable[str]) -> tuple[BehaviorSpec, ...]:
        """
        Resolve names into an ordered sequence of specs.

        Raises:
            UnknownCapability: any name is unregistered
            UnmetRequirement: a spec requires a name absent from ``names``
        """
        requested = set(names)
        unknown = requested - self._specs.keys()
        if unknown:
            raise UnknownCapability(unknown)

        for name in requested:
            missing = set(self._specs[name].requires) - requested
            if missing:
                raise UnmetRequirement(name, missing)

        # Kahn's algorithm; baseline first, ties broken by registration order
        pending = sorted(
            (self._specs[n] for n in requested),
            key=lambda s: (s.name != BASELINE, s.position),
        )
        ordered: list[BehaviorSpec] = []
        placed: set[str] = set()
        while pending:
            for spec in pending:
                if all(dep in placed for dep in spec.requires):
                    break
            else:
                cycle = ", ".join(s.name for s in pending)
                raise CapabilityFault(
                    code="CAP_008",
                    message=f"Capability requirements form a cycle: {cycle}",
                )
            pending.remove(spec)
            ordered.append(spec)
            placed.add(spec.name)

        return tuple(ordered)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __iter__(self) -> Iterator[BehaviorSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)
