"""
Authcraft Models - Behavior base and field errors.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Iterator, Mapping

from ..capabilities.faults import InvalidOption, MissingOption

if TYPE_CHECKING:
    from ..entity import AuthEntity


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_timedelta(value: Any, key: str) -> timedelta:
    """Accept a timedelta or a number of seconds (config files carry numbers)."""
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return timedelta(seconds=value)
    raise InvalidOption(key, value, "expected a duration or a number of seconds")


class FieldErrors(dict):
    """
    Field name -> list of messages.

    ``base`` collects errors that do not belong to a single field.
    """

    def add(self, field: str, message: str) -> None:
        self.setdefault(field, []).append(message)

    def merge(self, other: Mapping[str, list[str]]) -> None:
        for field, messages in other.items():
            for message in messages:
                self.add(field, message)

    def on(self, field: str) -> list[str]:
        return list(self.get(field, ()))

    def full_messages(self) -> list[str]:
        return [
            message if field == "base" else f"{field.replace('_', ' ').capitalize()} {message}"
            for field, messages in self.items()
            for message in messages
        ]


class Behavior:
    """
    Base class for capability implementations.

    One instance exists per (entity type, capability) binding and holds the
    resolved options. Behaviors never keep per-entity state: every method
    takes the entity it acts on.
    """

    name: str = ""

    def __init__(self, entity_type: type, options: Mapping[str, Any]):
        self.entity_type = entity_type
        self.options = MappingProxyType(dict(options))

    def option(self, key: str) -> Any:
        try:
            return self.options[key]
        except KeyError:
            raise MissingOption(self.name, key) from None

    def before_create(self, entity: AuthEntity) -> None:
        """Hook run by stores before first persistence."""

    def validate(self, entity: AuthEntity, errors: FieldErrors) -> None:
        """Hook adding field errors for ``entity``."""

    def __iter__(self) -> Iterator[str]:
        return iter(self.options)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.entity_type.__qualname__} {dict(self.options)!r}>"
