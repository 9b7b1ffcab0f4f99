"""
Authcraft Recovery - Collaborator protocols

Contracts the recovery flow consumes. Implementations are async; the flow
never holds a lock across these calls.
"""

from __future__ import annotations

from typing import Any, Protocol, TypeVar

E = TypeVar("E")


class EntityStore(Protocol):
    """Protocol for entity persistence."""

    async def find_by_identifier(self, entity_type: type[E], identifier: str) -> E | None:
        """Get entity by its identifier (e.g., email)."""
        ...

    async def find_by_recovery_token(self, entity_type: type[E], token: str) -> E | None:
        """Get entity by stored recovery token value."""
        ...

    async def save(self, entity: Any) -> None:
        """
        Persist entity.

        Raises:
            ValidationErrors: entity rejected
            StaleEntity: concurrent update lost
        """
        ...


class Notifier(Protocol):
    """Protocol for delivering recovery tokens."""

    async def notify(self, entity: Any, token: str) -> None:
        """
        Deliver ``token`` to the entity's recovery channel.

        Raises:
            DeliveryError: delivery failed (not retried by the flow)
        """
        ...


class SignIn(Protocol):
    """Protocol for establishing a session after a reset."""

    async def sign_in(self, entity: Any) -> Any:
        """Sign the entity in; returns the session object."""
        ...
