"""
Authcraft Capabilities - Declarative capability composition.

- registry: CapabilityRegistry / BehaviorSpec
- binder: modes (All, Subset, AllExcept), CapabilityBinder, the
  ``capabilities`` class decorator and the bound ``CapabilitySet``
- builtins: ``default_registry`` with the five built-in capabilities
  (imported lazily by the binder)
"""

from .faults import (
    AlreadyBound,
    CapabilityFault,
    CapabilityNotActive,
    DuplicateCapability,
    InvalidOption,
    MissingOption,
    UnknownCapability,
    UnknownOption,
)
from .registry import BASELINE, BehaviorSpec, CapabilityRegistry, UnmetRequirement
from .binder import (
    All,
    AllExcept,
    CapabilityBinder,
    CapabilityBinding,
    CapabilitySet,
    Mode,
    Subset,
    bind,
    capabilities,
    get_binder,
)

__all__ = [
    "AlreadyBound",
    "CapabilityFault",
    "CapabilityNotActive",
    "DuplicateCapability",
    "InvalidOption",
    "MissingOption",
    "UnknownCapability",
    "UnknownOption",
    "UnmetRequirement",
    "BASELINE",
    "BehaviorSpec",
    "CapabilityRegistry",
    "All",
    "AllExcept",
    "CapabilityBinder",
    "CapabilityBinding",
    "CapabilitySet",
    "Mode",
    "Subset",
    "bind",
    "capabilities",
    "get_binder",
]
