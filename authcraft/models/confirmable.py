"""
Authcraft Models - Confirmable

Account confirmation by token. A new entity gets a confirmation token
before its first save; ``confirm`` marks it confirmed and clears the token.
Entities may use the account for ``confirm_within`` after the token was sent.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Mapping

from ..recovery.tokens import tokens_match
from .base import Behavior, as_timedelta, utcnow

if TYPE_CHECKING:
    from ..entity import AuthEntity

logger = logging.getLogger("authcraft.models.confirmable")


class Confirmable(Behavior):

    name = "confirmable"

    defaults = {
        "confirm_within": timedelta(0),
    }

    def __init__(self, entity_type: type, options: Mapping[str, Any]):
        super().__init__(entity_type, options)
        self.confirm_within = as_timedelta(self.option("confirm_within"), "confirm_within")

    def before_create(self, entity: AuthEntity) -> None:
        if not self.confirmed(entity):
            self.generate_token(entity)

    def generate_token(self, entity: AuthEntity, now: datetime | None = None) -> str:
        token = secrets.token_urlsafe(32)
        entity.confirmation_token = token
        entity.confirmation_sent_at = now or utcnow()
        return token

    def confirmed(self, entity: AuthEntity) -> bool:
        return entity.confirmed_at is not None

    def confirm(self, entity: AuthEntity, now: datetime | None = None) -> bool:
        """
        Confirm the entity.

        Adds an error and returns False if it was confirmed already.
        """
        if self.confirmed(entity):
            entity.errors.add("email", "was already confirmed")
            return False

        entity.confirmed_at = now or utcnow()
        entity.confirmation_token = None
        logger.info("Confirmed %s %s", type(entity).__qualname__, entity.id)
        return True

    def confirm_by_token(self, entity: AuthEntity, token: str, now: datetime | None = None) -> bool:
        """Confirm only when ``token`` matches the stored one."""
        stored = entity.confirmation_token
        if not tokens_match(stored, token):
            entity.errors.add("confirmation_token", "is invalid")
            return False
        return self.confirm(entity, now)

    def active(self, entity: AuthEntity, now: datetime | None = None) -> bool:
        """Confirmed, or still inside the confirmation grace period."""
        if self.confirmed(entity):
            return True
        sent_at = entity.confirmation_sent_at
        if sent_at is None or not self.confirm_within:
            return False
        return (now or utcnow()) - sent_at < self.confirm_within
