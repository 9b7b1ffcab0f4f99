"""
Authcraft Models - Authenticable

Credential hashing and verification. Argon2id via argon2-cffi:
- ``stretches`` is the Argon2 time cost (iterations)
- ``pepper`` is a process-wide secret appended to the password before hashing
- ``memory_cost``/``parallelism`` are passed through to Argon2

Example Argon2 output:
    $argon2id$v=19$m=65536,t=2,p=4$saltbase64$hashbase64
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from ..capabilities.faults import InvalidOption
from .base import Behavior

if TYPE_CHECKING:
    from ..entity import AuthEntity

logger = logging.getLogger("authcraft.models.authenticable")


class Authenticable(Behavior):
    """
    Baseline capability: every bound entity type carries it.

    Security parameters default to Argon2id time_cost=2,
    memory_cost=65536 (64MB), parallelism=4.
    """

    name = "authenticable"

    defaults = {
        "stretches": 2,
        "pepper": None,
        "memory_cost": 65536,  # 64 MB
        "parallelism": 4,
        "authentication_keys": ("email",),
    }

    def __init__(self, entity_type: type, options: Mapping[str, Any]):
        super().__init__(entity_type, options)

        stretches = self.option("stretches")
        if not isinstance(stretches, int) or isinstance(stretches, bool) or stretches < 1:
            raise InvalidOption("stretches", stretches, "expected a positive integer")

        pepper = self.option("pepper")
        if pepper is not None and not isinstance(pepper, str):
            raise InvalidOption("pepper", pepper, "expected a string")

        self.hasher = PasswordHasher(
            time_cost=stretches,
            memory_cost=self.option("memory_cost"),
            parallelism=self.option("parallelism"),
        )

    @property
    def stretches(self) -> int:
        return self.options["stretches"]

    @property
    def pepper(self) -> str | None:
        return self.options["pepper"]

    def digest(self, password: str) -> str:
        """Hash password with the bound cost and pepper."""
        return self.hasher.hash(self._peppered(password))

    def set_password(self, entity: AuthEntity, password: str) -> None:
        """Hash ``password`` into ``entity.encrypted_password``."""
        entity.encrypted_password = self.digest(password)

    def valid_password(self, entity: AuthEntity, password: str | None) -> bool:
        """
        Verify password against the entity's hash.

        Returns False for a missing hash or password, never raises.
        """
        if not password or not entity.encrypted_password:
            return False
        try:
            return self.hasher.verify(entity.encrypted_password, self._peppered(password))
        except VerifyMismatchError:
            return False
        except (VerificationError, InvalidHashError):
            logger.warning("Unverifiable password hash on %s", type(entity).__qualname__)
            return False

    def needs_rehash(self, entity: AuthEntity) -> bool:
        """Check if the stored hash was produced with other parameters."""
        if not entity.encrypted_password:
            return False
        try:
            return self.hasher.check_needs_rehash(entity.encrypted_password)
        except InvalidHashError:
            return True

    def authentication_values(self, entity: AuthEntity) -> dict[str, Any]:
        """Values of the configured authentication keys."""
        return {key: getattr(entity, key, None) for key in self.option("authentication_keys")}

    def _peppered(self, password: str) -> str:
        return f"{password}{self.pepper}" if self.pepper else password
