"""
Authcraft Recovery - Token Management

Single-use password-recovery tokens stored on the entity itself
(``reset_password_token`` / ``reset_password_sent_at``).

Lifecycle per entity:

    NO_TOKEN --issue--> PENDING --consume--> NO_TOKEN
                           |
                           +--window elapses--> EXPIRED

Issuing again from any state overwrites the previous token, which
implicitly invalidates it. No I/O happens here: callers persist the
entity after each mutation.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger("authcraft.recovery.tokens")

DEFAULT_WINDOW = timedelta(hours=6)


class TokenValidation(str, Enum):
    """Outcome of presenting a recovery token."""
    VALID = "valid"
    EXPIRED = "expired"
    INVALID = "invalid"


class TokenState(str, Enum):
    """Position of an entity in the recovery state machine."""
    NO_TOKEN = "no_token"
    PENDING = "pending"
    EXPIRED = "expired"


def _as_bytes(value: str) -> bytes:
    # Lone surrogates come from undecodable request input; keep them comparable.
    return value.encode("utf-8", "surrogatepass")


def tokens_match(stored: str | None, presented: str | None) -> bool:
    """Constant-time comparison; empty on either side never matches."""
    if not stored or not presented:
        return False
    return hmac.compare_digest(_as_bytes(stored), _as_bytes(presented))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecoveryTokenManager:
    """
    Recovery token lifecycle manager.

    Responsibilities:
    - Issue unguessable URL-safe tokens (overwrite any previous one)
    - Validate presented tokens in constant time against the stored one
    - Expire tokens older than ``window``
    - Consume tokens after a successful reset

    With ``digest_tokens`` the entity stores SHA-256(token) instead of the
    token; lookups by token must then go through ``stored_form``.
    """

    def __init__(
        self,
        window: timedelta = DEFAULT_WINDOW,
        *,
        token_bytes: int = 32,
        digest_tokens: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ):
        if window <= timedelta(0):
            raise ValueError("Recovery window must be positive")
        self.window = window
        self.token_bytes = token_bytes
        self.digest_tokens = digest_tokens
        self.clock = clock

    def issue_token(self, entity: Any) -> str:
        """
        Issue a fresh token for ``entity``.

        Returns the token value; the caller delivers it.
        """
        token = secrets.token_urlsafe(self.token_bytes)
        replaced = entity.reset_password_token is not None
        entity.reset_password_token = self.stored_form(token)
        entity.reset_password_sent_at = self.clock()
        logger.info(
            "Issued recovery token for %s %s%s",
            type(entity).__qualname__,
            getattr(entity, "id", None),
            " (previous token replaced)" if replaced else "",
        )
        return token

    def validate_token(self, entity: Any, presented: str | None) -> TokenValidation:
        """
        Validate a presented token.

        VALID: matches and age <= window
        EXPIRED: matches but age > window
        INVALID: no match, nothing presented, or nothing stored
        """
        stored = entity.reset_password_token
        if not presented or not stored:
            return TokenValidation.INVALID

        candidate = self.stored_form(presented)
        if not tokens_match(stored, candidate):
            return TokenValidation.INVALID

        if self._is_expired(entity):
            return TokenValidation.EXPIRED

        return TokenValidation.VALID

    def consume_token(self, entity: Any) -> None:
        """Clear the token so it cannot be presented again."""
        entity.reset_password_token = None
        entity.reset_password_sent_at = None
        logger.info("Consumed recovery token for %s %s", type(entity).__qualname__, getattr(entity, "id", None))

    def token_state(self, entity: Any) -> TokenState:
        if not entity.reset_password_token:
            return TokenState.NO_TOKEN
        if self._is_expired(entity):
            return TokenState.EXPIRED
        return TokenState.PENDING

    def expires_at(self, entity: Any) -> datetime | None:
        sent_at = entity.reset_password_sent_at
        return sent_at + self.window if sent_at is not None else None

    def stored_form(self, token: str) -> str:
        """Value kept on the entity (and used for lookups) for ``token``."""
        if self.digest_tokens:
            return hashlib.sha256(_as_bytes(token)).hexdigest()
        return token

    def _is_expired(self, entity: Any) -> bool:
        expires_at = self.expires_at(entity)
        # A token without issue time cannot be dated; treat as expired.
        return expires_at is None or self.clock() > expires_at
