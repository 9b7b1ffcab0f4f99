"""
Authcraft - Authentication capabilities for persisted entities.

Declare per entity type which authentication behaviors apply:

    from authcraft import AuthEntity, capabilities

    @capabilities("confirmable", "recoverable", "validatable", stretches=4)
    class User(AuthEntity):
        pass

    User.has_capability("recoverable")              # True
    User.capability_option("authenticable", "stretches")  # 4

and serve the password-recovery flow with ``PasswordRecoveryController``.

Capabilities:
- authenticable: Argon2id credential hashing (always bound)
- confirmable: account confirmation by token
- recoverable: password recovery by token
- rememberable: remember-me token
- validatable: identifier and credential validation
"""

# Faults
from .faults import Fault, FaultContext, FaultDomain, Severity

# Configuration
from .config import (
    AuthcraftConfig,
    ConfigError,
    ConfigLoader,
    MailConfig,
    RecoveryConfig,
    configure,
    get_config,
)

# Capability composition
from .capabilities import (
    All,
    AllExcept,
    AlreadyBound,
    BehaviorSpec,
    CapabilityBinder,
    CapabilityBinding,
    CapabilityNotActive,
    CapabilityRegistry,
    CapabilitySet,
    DuplicateCapability,
    InvalidOption,
    MissingOption,
    Subset,
    UnknownCapability,
    UnknownOption,
    bind,
    capabilities,
)

# Behaviors
from .models import (
    Authenticable,
    Behavior,
    Confirmable,
    FieldErrors,
    Recoverable,
    Rememberable,
    StaleEntity,
    Validatable,
    ValidationErrors,
)

# Recovery
from .recovery import (
    DeliveryError,
    NotFound,
    PasswordRecoveryController,
    SignInError,
    RecoveryRequest,
    RecoveryTokenManager,
    Redirect,
    Render,
    TokenState,
    TokenValidation,
)

from .entity import AuthEntity
from .stores import MemoryEntityStore
from .mail import ConsoleTransport, MailMessage, MailNotifier, OutboxTransport


__all__ = [
    # Faults
    "Fault",
    "FaultContext",
    "FaultDomain",
    "Severity",
    # Configuration
    "AuthcraftConfig",
    "ConfigError",
    "ConfigLoader",
    "MailConfig",
    "RecoveryConfig",
    "configure",
    "get_config",
    # Capability composition
    "All",
    "AllExcept",
    "AlreadyBound",
    "BehaviorSpec",
    "CapabilityBinder",
    "CapabilityBinding",
    "CapabilityNotActive",
    "CapabilityRegistry",
    "CapabilitySet",
    "DuplicateCapability",
    "InvalidOption",
    "MissingOption",
    "Subset",
    "UnknownCapability",
    "UnknownOption",
    "bind",
    "capabilities",
    # Behaviors
    "Authenticable",
    "Behavior",
    "Confirmable",
    "FieldErrors",
    "Recoverable",
    "Rememberable",
    "StaleEntity",
    "Validatable",
    "ValidationErrors",
    # Recovery
    "DeliveryError",
    "NotFound",
    "PasswordRecoveryController",
    "SignInError",
    "RecoveryRequest",
    "RecoveryTokenManager",
    "Redirect",
    "Render",
    "TokenState",
    "TokenValidation",
    # Entity, stores, mail
    "AuthEntity",
    "MemoryEntityStore",
    "ConsoleTransport",
    "MailMessage",
    "MailNotifier",
    "OutboxTransport",
]


__version__ = "0.1.0"
