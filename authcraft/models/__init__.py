"""
Authcraft Models - Capability behaviors.

One behavior class per capability. Instances are created by the binder
with resolved options and shared by every entity of the bound type.
"""

from .base import Behavior, FieldErrors
from .authenticable import Authenticable
from .confirmable import Confirmable
from .recoverable import Recoverable
from .rememberable import Rememberable
from .validatable import Validatable
from .faults import StaleEntity, ValidationErrors

__all__ = [
    "Behavior",
    "FieldErrors",
    "Authenticable",
    "Confirmable",
    "Recoverable",
    "Rememberable",
    "Validatable",
    "StaleEntity",
    "ValidationErrors",
]
