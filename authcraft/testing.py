"""
Authcraft Testing - Collaborator doubles.

Recording implementations of the recovery collaborators and a
controllable clock for token-expiry tests.

Usage::

    notifier = RecordingNotifier()
    signer = RecordingSignIn()
    controller = PasswordRecoveryController(User, store, notifier, signer)

    await controller.request_token(RecoveryRequest({"email": "a@b.io"}))
    assert len(notifier.sent) == 1
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from .recovery.faults import DeliveryError


@dataclass
class SentToken:
    """A token handed to the notifier."""
    entity_id: str | None
    email: str | None
    token: str


class RecordingNotifier:
    """Notifier that records tokens instead of delivering them."""

    def __init__(self, fail: bool = False):
        self.sent: list[SentToken] = []
        self.fail = fail

    async def notify(self, entity: Any, token: str) -> None:
        if self.fail:
            raise DeliveryError("recording notifier set to fail", transport="recording")
        self.sent.append(SentToken(entity.id, entity.email, token))

    @property
    def last_token(self) -> str | None:
        return self.sent[-1].token if self.sent else None


@dataclass
class TestSession:
    """Session handle returned by ``RecordingSignIn``."""
    entity_id: str | None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    __test__ = False  # not a pytest class


class RecordingSignIn:
    """Sign-in collaborator recording who was signed in."""

    def __init__(self):
        self.signed_in: list[Any] = []

    async def sign_in(self, entity: Any) -> TestSession:
        self.signed_in.append(entity)
        return TestSession(entity.id)


class FrozenClock:
    """
    Callable clock for ``Recoverable.use_clock``.

    Usage::

        clock = FrozenClock()
        User.behavior("recoverable").use_clock(clock)
        clock.advance(hours=6, seconds=1)
    """

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now += timedelta(**delta)
        return self.now
