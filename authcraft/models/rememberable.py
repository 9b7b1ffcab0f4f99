"""
Authcraft Models - Rememberable

Remember-me persistence token stored on the entity, valid for
``remember_for`` after it was created.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Mapping

from ..recovery.tokens import tokens_match
from .base import Behavior, as_timedelta, utcnow

if TYPE_CHECKING:
    from ..entity import AuthEntity


class Rememberable(Behavior):

    name = "rememberable"

    defaults = {
        "remember_for": timedelta(weeks=2),
    }

    def __init__(self, entity_type: type, options: Mapping[str, Any]):
        super().__init__(entity_type, options)
        self.remember_for = as_timedelta(self.option("remember_for"), "remember_for")

    def remember_me(self, entity: AuthEntity, now: datetime | None = None) -> str:
        token = secrets.token_urlsafe(32)
        entity.remember_token = token
        entity.remember_created_at = now or utcnow()
        return token

    def forget_me(self, entity: AuthEntity) -> None:
        entity.remember_token = None
        entity.remember_created_at = None

    def remember_expires_at(self, entity: AuthEntity) -> datetime | None:
        if entity.remember_created_at is None:
            return None
        return entity.remember_created_at + self.remember_for

    def remember_expired(self, entity: AuthEntity, now: datetime | None = None) -> bool:
        expires_at = self.remember_expires_at(entity)
        return expires_at is None or (now or utcnow()) > expires_at

    def valid_remember_token(self, entity: AuthEntity, token: str | None, now: datetime | None = None) -> bool:
        stored = entity.remember_token
        if not tokens_match(stored, token):
            return False
        return not self.remember_expired(entity, now)
