"""
Authcraft - Entity base

``AuthEntity`` is the record the capabilities act on. Hosts subclass it
(adding their own dataclass fields as needed) and declare capabilities:

    @capabilities("recoverable", "validatable")
    @dataclass(eq=False)
    class User(AuthEntity):
        name: str | None = None

The entity owns the fields every built-in behavior reads or writes;
persistence belongs to an ``EntityStore``. Mutating methods never save:
callers persist after each mutation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar

from .capabilities.binder import CapabilitySet, Subset, capability_set_of, get_binder
from .models.base import FieldErrors
from .models.faults import ValidationErrors
from .recovery.tokens import TokenState, TokenValidation


@dataclass(eq=False)
class AuthEntity:
    """
    Persisted user-like entity.

    Attributes:
        id: Store-assigned identifier (None until first save)
        email: Identifier used for lookups
        encrypted_password: Argon2 hash (authenticable)
        password/password_confirmation: Virtual fields, never persisted
        confirmation_*/confirmed_at: confirmable
        reset_password_*: recoverable
        remember_*: rememberable
        version: Optimistic concurrency counter maintained by the store
    """

    email: str | None = None
    encrypted_password: str | None = field(default=None, repr=False)
    id: str | None = None

    confirmation_token: str | None = field(default=None, repr=False)
    confirmation_sent_at: datetime | None = None
    confirmed_at: datetime | None = None

    reset_password_token: str | None = field(default=None, repr=False)
    reset_password_sent_at: datetime | None = None

    remember_token: str | None = field(default=None, repr=False)
    remember_created_at: datetime | None = None

    version: int = 0

    password: str | None = field(default=None, repr=False, compare=False)
    password_confirmation: str | None = field(default=None, repr=False, compare=False)
    errors: FieldErrors = field(default_factory=FieldErrors, repr=False, compare=False)

    # Fields a store must not persist
    VIRTUAL_FIELDS: ClassVar[frozenset[str]] = frozenset({"password", "password_confirmation", "errors"})

    # ------------------------------------------------------------------
    # Capability introspection
    # ------------------------------------------------------------------

    @classmethod
    def capability_set(cls) -> CapabilitySet:
        """
        Bound capabilities for this type.

        Types that never declared capabilities (nor inherit a declaration)
        get the baseline on first use.
        """
        capability_set = capability_set_of(cls)
        if capability_set is None:
            capability_set = get_binder().bind(cls, Subset())
        return capability_set

    @classmethod
    def has_capability(cls, name: str) -> bool:
        return cls.capability_set().has_capability(name)

    @classmethod
    def capability_option(cls, name: str, key: str) -> Any:
        return cls.capability_set().capability_option(name, key)

    @classmethod
    def behavior(cls, name: str) -> Any:
        return cls.capability_set().behavior(name)

    @property
    def new_record(self) -> bool:
        return self.id is None

    # ------------------------------------------------------------------
    # Lifecycle hooks (called by stores)
    # ------------------------------------------------------------------

    def before_create(self) -> None:
        for behavior in self.capability_set().behaviors():
            behavior.before_create(self)

    def validate(self) -> FieldErrors:
        """Run every bound behavior's validation; result kept on ``errors``."""
        errors = FieldErrors()
        for behavior in self.capability_set().behaviors():
            behavior.validate(self, errors)
        self.errors = errors
        return errors

    def clear_virtual_fields(self) -> None:
        self.password = None
        self.password_confirmation = None

    # ------------------------------------------------------------------
    # authenticable
    # ------------------------------------------------------------------

    def set_password(self, password: str) -> None:
        """Hash ``password``; validation is left to ``update_credential``/stores."""
        self.password = password
        self.behavior("authenticable").set_password(self, password)

    def valid_password(self, password: str | None) -> bool:
        return self.behavior("authenticable").valid_password(self, password)

    def update_credential(self, password: str | None, password_confirmation: str | None = None) -> None:
        """
        Replace the credential after validating it.

        Raises:
            ValidationErrors: new credential rejected; the stored hash is
                left untouched
        """
        self.password = password if password is not None else ""
        self.password_confirmation = password_confirmation

        errors = self.validate()
        if not self.password and "password" not in errors:
            errors.add("password", "can't be blank")
        if errors:
            self.clear_virtual_fields()
            raise ValidationErrors(errors)

        self.behavior("authenticable").set_password(self, self.password)
        self.clear_virtual_fields()

    # ------------------------------------------------------------------
    # recoverable
    # ------------------------------------------------------------------

    def issue_recovery_token(self) -> str:
        return self.behavior("recoverable").issue_token(self)

    def validate_recovery_token(self, token: str | None) -> TokenValidation:
        return self.behavior("recoverable").validate_token(self, token)

    def consume_recovery_token(self) -> None:
        self.behavior("recoverable").consume_token(self)

    def recovery_state(self) -> TokenState:
        return self.behavior("recoverable").token_state(self)

    # ------------------------------------------------------------------
    # confirmable
    # ------------------------------------------------------------------

    @property
    def confirmed(self) -> bool:
        return self.behavior("confirmable").confirmed(self)

    def confirm(self) -> bool:
        return self.behavior("confirmable").confirm(self)

    def confirm_by_token(self, token: str) -> bool:
        return self.behavior("confirmable").confirm_by_token(self, token)

    # ------------------------------------------------------------------
    # rememberable
    # ------------------------------------------------------------------

    def remember_me(self) -> str:
        return self.behavior("rememberable").remember_me(self)

    def forget_me(self) -> None:
        self.behavior("rememberable").forget_me(self)

    def valid_remember_token(self, token: str | None) -> bool:
        return self.behavior("rememberable").valid_remember_token(self, token)
