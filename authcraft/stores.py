"""
Authcraft - Entity Stores

In-memory entity storage implementing the ``EntityStore`` protocol, for
development and testing.

- Records are copied in and out, so unsaved mutations never leak into
  the store
- ``version`` is checked and bumped on every save (optimistic locking)
- The identifier is unique per entity type
"""

from __future__ import annotations

import asyncio
import copy
import logging
import uuid
from collections import defaultdict
from dataclasses import fields
from typing import Any, TypeVar

from .models.faults import StaleEntity, ValidationErrors

logger = logging.getLogger("authcraft.stores")

E = TypeVar("E")


class MemoryEntityStore:
    """In-memory entity storage for development/testing."""

    def __init__(self, identifier_field: str = "email"):
        self.identifier_field = identifier_field
        self._entities: dict[type, dict[str, Any]] = defaultdict(dict)
        self._lock = asyncio.Lock()

    async def create(self, entity: E) -> E:
        """
        Run creation hooks, validate and store a new entity.

        Raises:
            ValidationErrors: entity invalid or identifier taken
        """
        if entity.id is not None:
            raise ValueError(f"Entity {entity.id} already persisted")

        entity.before_create()
        entity.id = uuid.uuid4().hex
        try:
            await self.save(entity)
        except ValidationErrors:
            entity.id = None
            raise
        return entity

    async def save(self, entity: Any) -> None:
        """
        Persist entity.

        Raises:
            ValidationErrors: entity invalid or identifier taken
            StaleEntity: entity was saved elsewhere since it was loaded
        """
        if entity.id is None:
            raise ValueError("Use create() for new entities")

        errors = entity.validate()
        if errors:
            raise ValidationErrors(errors)

        async with self._lock:
            records = self._entities[type(entity)]
            current = records.get(entity.id)

            if current is not None and current.version != entity.version:
                raise StaleEntity(entity.id, entity.version, current.version)

            identifier = getattr(entity, self.identifier_field, None)
            if identifier is not None and self._identifier_taken(records, identifier, entity.id):
                raise ValidationErrors({self.identifier_field: ["has already been taken"]})

            entity.version += 1
            entity.clear_virtual_fields()
            records[entity.id] = self._copy(entity)

        logger.debug(f"Saved {type(entity).__qualname__} {entity.id} (v{entity.version})")

    async def get(self, entity_type: type[E], entity_id: str) -> E | None:
        """Get entity by ID."""
        record = self._entities[entity_type].get(entity_id)
        return self._copy(record) if record is not None else None

    async def find_by_identifier(self, entity_type: type[E], identifier: str) -> E | None:
        """Get entity by identifier (case-insensitive)."""
        wanted = identifier.strip().lower()
        for record in self._entities[entity_type].values():
            value = getattr(record, self.identifier_field, None)
            if value is not None and value.lower() == wanted:
                return self._copy(record)
        return None

    async def find_by_recovery_token(self, entity_type: type[E], token: str) -> E | None:
        """Get entity by stored recovery token value."""
        if not token:
            return None
        for record in self._entities[entity_type].values():
            if record.reset_password_token == token:
                return self._copy(record)
        return None

    async def delete(self, entity_type: type, entity_id: str) -> bool:
        async with self._lock:
            return self._entities[entity_type].pop(entity_id, None) is not None

    def count(self, entity_type: type) -> int:
        return len(self._entities[entity_type])

    def _identifier_taken(self, records: dict[str, Any], identifier: str, entity_id: str) -> bool:
        wanted = identifier.lower()
        return any(
            other_id != entity_id
            and getattr(other, self.identifier_field, None) is not None
            and getattr(other, self.identifier_field).lower() == wanted
            for other_id, other in records.items()
        )

    @staticmethod
    def _copy(entity: E) -> E:
        clone = copy.copy(entity)
        for f in fields(entity):
            if f.name in entity.VIRTUAL_FIELDS:
                continue
            setattr(clone, f.name, copy.copy(getattr(entity, f.name)))
        clone.password = None
        clone.password_confirmation = None
        clone.errors = type(entity.errors)()
        return clone
