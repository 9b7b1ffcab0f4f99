"""
Authcraft Models - Validatable

Validation rules for the identifier (email) and the credential:
- email present and well formed
- password required for new entities and whenever it is being changed
- password length inside ``password_length``
- password matches its confirmation when one is given
- password not in the common-password blacklist (``reject_common``)

Uniqueness of the email is enforced by the store on save.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Mapping

from ..capabilities.faults import InvalidOption
from .base import Behavior, FieldErrors

if TYPE_CHECKING:
    from ..entity import AuthEntity


# Basic email regex for fast validation (not RFC-complete but practical)
EMAIL_REGEXP = r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9-]+(?:\.[a-zA-Z0-9-]+)*$"

# Common passwords to reject
COMMON_PASSWORDS = frozenset({
    "password", "password123", "12345678", "qwerty", "abc123",
    "monkey", "1234567", "letmein", "trustno1", "dragon",
    "baseball", "iloveyou", "master", "sunshine", "ashley",
    "bailey", "passw0rd", "shadow", "123123", "654321",
})


class Validatable(Behavior):

    name = "validatable"

    defaults = {
        "password_length": (6, 128),
        "email_regexp": EMAIL_REGEXP,
        "reject_common": True,
    }

    def __init__(self, entity_type: type, options: Mapping[str, Any]):
        super().__init__(entity_type, options)

        length = self.option("password_length")
        try:
            self.min_length, self.max_length = (int(bound) for bound in length)
        except (TypeError, ValueError):
            raise InvalidOption("password_length", length, "expected a (min, max) pair") from None
        if not 0 < self.min_length <= self.max_length:
            raise InvalidOption("password_length", length, "expected 0 < min <= max")

        pattern = self.option("email_regexp")
        try:
            self.email_pattern = re.compile(pattern)
        except (TypeError, re.error) as exc:
            raise InvalidOption("email_regexp", pattern, str(exc)) from None

    def valid_email(self, email: str | None) -> bool:
        return bool(email) and self.email_pattern.match(email) is not None

    def validate(self, entity: AuthEntity, errors: FieldErrors) -> None:
        self._validate_email(entity, errors)
        if self.password_required(entity):
            self._validate_password(entity, errors)

    def password_required(self, entity: AuthEntity) -> bool:
        """New entities need a password; existing ones only when changing it."""
        return (
            entity.encrypted_password is None
            or entity.password is not None
            or entity.password_confirmation is not None
        )

    def _validate_email(self, entity: AuthEntity, errors: FieldErrors) -> None:
        if not entity.email:
            errors.add("email", "can't be blank")
        elif not self.valid_email(entity.email):
            errors.add("email", "is invalid")

    def _validate_password(self, entity: AuthEntity, errors: FieldErrors) -> None:
        password = entity.password
        if not password:
            errors.add("password", "can't be blank")
            return

        if len(password) < self.min_length:
            errors.add("password", f"is too short (minimum is {self.min_length} characters)")
        elif len(password) > self.max_length:
            errors.add("password", f"is too long (maximum is {self.max_length} characters)")

        if self.option("reject_common") and password.lower() in COMMON_PASSWORDS:
            errors.add("password", "is too common")

        confirmation = entity.password_confirmation
        if confirmation is not None and confirmation != password:
            errors.add("password_confirmation", "doesn't match password")
