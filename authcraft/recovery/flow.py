"""
Authcraft Recovery - Password recovery flow

Four request handlers, stateless between steps except for the token
carried in the reset link and the entity's persisted recovery fields:

    GET  /password/new    show_request_form
    POST /password        request_token          identifier field
    GET  /password/edit   show_reset_form        reset_password_token
    PUT  /password        submit_new_credential  reset_password_token,
                                                 password, password_confirmation

Each handler takes a ``RecoveryRequest`` and returns ``Render`` (form,
possibly with field errors) or ``Redirect``. Request-scoped faults from
collaborators become form errors; nothing here raises them to the caller.
The "no authenticated user" gate is assumed to have run already.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Union

from ..config import RecoveryConfig, get_config
from ..faults import Fault, FaultContext, hash_identifier
from ..models.base import FieldErrors
from ..models.faults import StaleEntity, ValidationErrors
from .faults import DeliveryError, NotFound, SignInError
from .protocols import EntityStore, Notifier, SignIn
from .tokens import TokenValidation

logger = logging.getLogger("authcraft.recovery.flow")

RECOVERABLE = "recoverable"
TOKEN_PARAM = "reset_password_token"

FLASH_MESSAGES = {
    "send_instructions": (
        "You will receive an email with instructions about how to reset "
        "your password in a few minutes."
    ),
    "updated": "Your password was changed successfully. You are now signed in.",
    "updated_not_active": "Your password was changed successfully.",
}


# ============================================================================
# Request / Response shapes
# ============================================================================

@dataclass
class RecoveryRequest:
    """Form or query parameters of one request."""
    params: Mapping[str, Any] = field(default_factory=dict)

    def param(self, key: str) -> str:
        value = self.params.get(key)
        return value if isinstance(value, str) else ""

    def optional(self, key: str) -> str | None:
        value = self.params.get(key)
        return value if isinstance(value, str) else None


@dataclass
class Render:
    """Render ``template`` with ``context``; ``errors`` maps field -> messages."""
    template: str
    context: dict[str, Any] = field(default_factory=dict)
    errors: FieldErrors = field(default_factory=FieldErrors)

    @property
    def status(self) -> int:
        return 422 if self.errors else 200


@dataclass
class Redirect:
    """Redirect to ``location`` with an optional (kind, key) flash."""
    location: str
    flash: tuple[str, str] | None = None
    session: Any = None
    status: int = 303

    @property
    def flash_message(self) -> str | None:
        return FLASH_MESSAGES.get(self.flash[1]) if self.flash else None


RecoveryResponse = Union[Render, Redirect]


# ============================================================================
# Controller
# ============================================================================

class PasswordRecoveryController:
    """
    Password recovery request handlers for one entity type.

    Args:
        entity_type: Bound AuthEntity subclass
        store: Entity persistence
        notifier: Delivers the token (email or equivalent)
        sign_in: Establishes the session after a successful reset
        config: Flow settings (default: ``get_config().recovery``)
    """

    NEW_TEMPLATE = "passwords/new"
    EDIT_TEMPLATE = "passwords/edit"

    def __init__(
        self,
        entity_type: type,
        store: EntityStore,
        notifier: Notifier,
        sign_in: SignIn,
        config: RecoveryConfig | None = None,
    ):
        self.entity_type = entity_type
        self.store = store
        self.notifier = notifier
        self.signer = sign_in
        self.config = config or get_config().recovery

    # ------------------------------------------------------------------
    # GET /password/new
    # ------------------------------------------------------------------

    async def show_request_form(self, request: RecoveryRequest) -> Render:
        return self._render_new("", FieldErrors())

    # ------------------------------------------------------------------
    # POST /password
    # ------------------------------------------------------------------

    async def request_token(self, request: RecoveryRequest) -> RecoveryResponse:
        field_name = self.config.identifier_field
        identifier = request.param(field_name).strip()

        errors = self._check_identifier(field_name, identifier)
        if errors:
            return self._render_new(identifier, errors)

        try:
            entity = await self.store.find_by_identifier(self.entity_type, identifier)
        except NotFound:
            entity = None

        if entity is None:
            logger.info(f"Recovery requested for unknown identifier {hash_identifier(identifier)}")
            if not self.config.paranoid:
                errors.add(field_name, NotFound.public_message)
                return self._render_new(identifier, errors)
            return self._instructions_sent()

        if not type(entity).has_capability(RECOVERABLE):
            logger.warning(f"Recovery requested for {type(entity).__qualname__}, which is not recoverable")
            return self._instructions_sent()

        token = entity.issue_recovery_token()
        try:
            await self.store.save(entity)
        except (ValidationErrors, StaleEntity) as fault:
            # Concurrent issuance is last-write-wins; the winning request
            # already delivered its own token.
            self._log_fault(fault, "request_token")
            if self.config.paranoid:
                return self._instructions_sent()
            errors.add("base", DeliveryError.public_message)
            return self._render_new(identifier, errors)

        try:
            await self.notifier.notify(entity, token)
        except DeliveryError as fault:
            self._log_fault(fault, "request_token")
            errors.add("base", DeliveryError.public_message)
            return self._render_new(identifier, errors)

        return self._instructions_sent()

    # ------------------------------------------------------------------
    # GET /password/edit?reset_password_token=...
    # ------------------------------------------------------------------

    async def show_reset_form(self, request: RecoveryRequest) -> Render:
        # Expiry is checked on submit, where it becomes a field error.
        return self._render_edit(request.param(TOKEN_PARAM), FieldErrors())

    # ------------------------------------------------------------------
    # PUT /password
    # ------------------------------------------------------------------

    async def submit_new_credential(self, request: RecoveryRequest) -> RecoveryResponse:
        token = request.param(TOKEN_PARAM)
        errors = FieldErrors()

        entity = await self._find_by_token(token)
        outcome = entity.validate_recovery_token(token) if entity is not None else TokenValidation.INVALID

        if outcome is TokenValidation.EXPIRED:
            errors.add(TOKEN_PARAM, "has expired, please request a new one")
            return self._render_edit(token, errors)
        if outcome is not TokenValidation.VALID:
            errors.add(TOKEN_PARAM, "is invalid")
            return self._render_edit(token, errors)

        try:
            entity.update_credential(
                request.optional("password"),
                request.optional("password_confirmation"),
            )
        except ValidationErrors as fault:
            # Token stays valid: the user may retry inside the window.
            errors.merge(fault.errors)
            return self._render_edit(token, errors)

        entity.consume_recovery_token()
        try:
            await self.store.save(entity)
        except (ValidationErrors, StaleEntity) as fault:
            self._log_fault(fault, "submit_new_credential")
            if isinstance(fault, ValidationErrors):
                errors.merge(fault.errors)
            else:
                errors.add("base", fault.public_message)
            return self._render_edit(token, errors)

        try:
            session = await self.signer.sign_in(entity)
        except Exception as exc:
            # Credential is already replaced; send the user to sign in by hand.
            self._log_fault(SignInError(str(exc)), "submit_new_credential", cause=exc)
            return Redirect(self.config.sign_in_path, flash=("success", "updated_not_active"))

        logger.info(f"Password reset completed for {type(entity).__qualname__} {entity.id}")
        return Redirect(
            self.config.after_sign_in_path,
            flash=("success", "updated"),
            session=session,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_identifier(self, field_name: str, identifier: str) -> FieldErrors:
        errors = FieldErrors()
        if not identifier:
            errors.add(field_name, "can't be blank")
        elif field_name == "email" and self.entity_type.has_capability("validatable"):
            if not self.entity_type.behavior("validatable").valid_email(identifier):
                errors.add(field_name, "is invalid")
        return errors

    async def _find_by_token(self, token: str) -> Any:
        if not token or not self.entity_type.has_capability(RECOVERABLE):
            return None
        lookup = self.entity_type.behavior(RECOVERABLE).lookup_value(token)
        try:
            return await self.store.find_by_recovery_token(self.entity_type, lookup)
        except NotFound:
            return None

    def _instructions_sent(self) -> Redirect:
        return Redirect(self.config.sign_in_path, flash=("success", "send_instructions"))

    def _render_new(self, identifier: str, errors: FieldErrors) -> Render:
        resource = self.entity_type()
        setattr(resource, self.config.identifier_field, identifier or None)
        resource.errors = errors
        return Render(
            self.NEW_TEMPLATE,
            context={"resource": resource, "identifier_field": self.config.identifier_field},
            errors=errors,
        )

    def _render_edit(self, token: str, errors: FieldErrors) -> Render:
        resource = self.entity_type()
        resource.reset_password_token = token or None
        resource.errors = errors
        return Render(
            self.EDIT_TEMPLATE,
            context={"resource": resource, TOKEN_PARAM: token},
            errors=errors,
        )

    def _log_fault(self, fault: Fault, action: str, cause: BaseException | None = None) -> None:
        ctx = FaultContext.capture(fault, action=action, cause=cause)
        logger.warning(f"Recovery {action} failed: {ctx}", extra={"fault": ctx.to_dict()})
