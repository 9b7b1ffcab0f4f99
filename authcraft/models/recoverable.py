"""
Authcraft Models - Recoverable

Password recovery by token. Token state transitions are delegated to
``RecoveryTokenManager``; this behavior supplies its configuration
(``reset_password_within``, ``digest_tokens``) per entity type.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Callable, Mapping

from ..capabilities.faults import InvalidOption
from ..recovery.tokens import RecoveryTokenManager, TokenState, TokenValidation
from .base import Behavior, as_timedelta, utcnow

if TYPE_CHECKING:
    from ..entity import AuthEntity


class Recoverable(Behavior):

    name = "recoverable"

    defaults = {
        "reset_password_within": timedelta(hours=6),
        "digest_tokens": False,
    }

    def __init__(self, entity_type: type, options: Mapping[str, Any]):
        super().__init__(entity_type, options)
        window = as_timedelta(self.option("reset_password_within"), "reset_password_within")
        if window <= timedelta(0):
            raise InvalidOption("reset_password_within", window, "expected a positive duration")
        self.tokens = RecoveryTokenManager(
            window,
            digest_tokens=bool(self.option("digest_tokens")),
            clock=utcnow,
        )

    @property
    def reset_password_within(self) -> timedelta:
        return self.tokens.window

    def use_clock(self, clock: Callable[[], datetime]) -> None:
        """Swap the time source (tests, replays)."""
        self.tokens.clock = clock

    def issue_token(self, entity: AuthEntity) -> str:
        return self.tokens.issue_token(entity)

    def validate_token(self, entity: AuthEntity, token: str | None) -> TokenValidation:
        return self.tokens.validate_token(entity, token)

    def consume_token(self, entity: AuthEntity) -> None:
        self.tokens.consume_token(entity)

    def token_state(self, entity: AuthEntity) -> TokenState:
        return self.tokens.token_state(entity)

    def lookup_value(self, token: str) -> str:
        """Stored form of ``token``, for store lookups."""
        return self.tokens.stored_form(token)
