"""
Authcraft Capabilities - Built-in registrations.

Populates the process-wide ``default_registry`` with the five built-in
capabilities. Dependents require ``authenticable``.
"""

from __future__ import annotations

from ..models.authenticable import Authenticable
from ..models.confirmable import Confirmable
from ..models.recoverable import Recoverable
from ..models.rememberable import Rememberable
from ..models.validatable import Validatable
from .registry import BASELINE, CapabilityRegistry

BUILTIN_BEHAVIORS = (Authenticable, Confirmable, Recoverable, Rememberable, Validatable)


def register_builtins(registry: CapabilityRegistry) -> CapabilityRegistry:
    """Register the built-in behaviors on ``registry``."""
    for behavior in BUILTIN_BEHAVIORS:
        requires = () if behavior.name == BASELINE else (BASELINE,)
        registry.register(behavior.name, behavior.defaults, behavior, requires=requires)
    return registry


default_registry = register_builtins(CapabilityRegistry())
