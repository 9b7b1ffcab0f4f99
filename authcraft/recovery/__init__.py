"""
Authcraft Recovery - Password recovery by token.

- tokens: RecoveryTokenManager (issue / validate / expire / consume)
- flow: PasswordRecoveryController (the four request handlers)
- protocols: EntityStore, Notifier, SignIn collaborator contracts
"""

from .tokens import (
    DEFAULT_WINDOW,
    RecoveryTokenManager,
    TokenState,
    TokenValidation,
)
from .faults import DeliveryError, NotFound, SignInError
from .protocols import EntityStore, Notifier, SignIn
from .flow import (
    FLASH_MESSAGES,
    PasswordRecoveryController,
    RecoveryRequest,
    RecoveryResponse,
    Redirect,
    Render,
)

__all__ = [
    "DEFAULT_WINDOW",
    "RecoveryTokenManager",
    "TokenState",
    "TokenValidation",
    "DeliveryError",
    "NotFound",
    "SignInError",
    "EntityStore",
    "Notifier",
    "SignIn",
    "FLASH_MESSAGES",
    "PasswordRecoveryController",
    "RecoveryRequest",
    "RecoveryResponse",
    "Redirect",
    "Render",
]
