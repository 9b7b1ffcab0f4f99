"""
Password recovery flow: request form, token request, reset form,
credential submission.
"""

import re

import pytest

from authcraft import (
    DeliveryError,
    MailConfig,
    MailNotifier,
    OutboxTransport,
    PasswordRecoveryController,
    RecoveryConfig,
    RecoveryRequest,
    Redirect,
    Render,
    StaleEntity,
    TokenState,
)
from authcraft.recovery.flow import FLASH_MESSAGES, TOKEN_PARAM

from conftest import STRONG_PASSWORD, make_entity_type

NEW_PASSWORD = "brand-new-passphrase"


@pytest.fixture
def controller(user_type, store, notifier, signer):
    return PasswordRecoveryController(user_type, store, notifier, signer, config=RecoveryConfig())


def reset_params(token, password=NEW_PASSWORD, confirmation=NEW_PASSWORD):
    return RecoveryRequest({
        TOKEN_PARAM: token,
        "password": password,
        "password_confirmation": confirmation,
    })


async def request_reset(controller, email="alice@example.com"):
    return await controller.request_token(RecoveryRequest({"email": email}))


class StaleOnSaveStore:
    """Store wrapper whose saves always lose the version race."""

    def __init__(self, inner):
        self.inner = inner

    async def find_by_identifier(self, entity_type, identifier):
        return await self.inner.find_by_identifier(entity_type, identifier)

    async def find_by_recovery_token(self, entity_type, token):
        return await self.inner.find_by_recovery_token(entity_type, token)

    async def save(self, entity):
        raise StaleEntity(entity.id, entity.version, entity.version + 1)


# ============================================================================
# Request form
# ============================================================================

class TestShowRequestForm:

    @pytest.mark.asyncio
    async def test_renders_blank_form(self, controller, user_type):
        response = await controller.show_request_form(RecoveryRequest())

        assert isinstance(response, Render)
        assert response.template == "passwords/new"
        assert response.status == 200
        assert isinstance(response.context["resource"], user_type)
        assert response.context["resource"].email is None
        assert response.context["identifier_field"] == "email"


# ============================================================================
# Token request
# ============================================================================

class TestRequestToken:

    @pytest.mark.asyncio
    async def test_known_identifier(self, controller, store, notifier, alice, user_type):
        response = await request_reset(controller)

        assert isinstance(response, Redirect)
        assert response.location == "/session/new"
        assert response.flash == ("success", "send_instructions")
        assert response.flash_message == FLASH_MESSAGES["send_instructions"]

        assert len(notifier.sent) == 1
        assert notifier.sent[0].entity_id == alice.id
        stored = await store.get(user_type, alice.id)
        assert stored.reset_password_token == notifier.last_token
        assert stored.recovery_state() is TokenState.PENDING

    @pytest.mark.asyncio
    async def test_identifier_is_case_insensitive(self, controller, notifier, alice):
        await request_reset(controller, "  ALICE@Example.com ")
        assert len(notifier.sent) == 1

    @pytest.mark.asyncio
    async def test_unknown_identifier_looks_the_same(self, controller, notifier, alice):
        known = await request_reset(controller)
        unknown = await request_reset(controller, "mallory@example.com")

        assert unknown == known
        assert len(notifier.sent) == 1

    @pytest.mark.asyncio
    async def test_unknown_identifier_never_notifies(self, controller, notifier):
        response = await request_reset(controller, "nobody@example.com")

        assert isinstance(response, Redirect)
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_unknown_identifier_not_paranoid(self, user_type, store, notifier, signer):
        controller = PasswordRecoveryController(
            user_type, store, notifier, signer, config=RecoveryConfig(paranoid=False)
        )
        response = await request_reset(controller, "nobody@example.com")

        assert isinstance(response, Render)
        assert response.errors.on("email") == ["not found"]
        assert response.context["resource"].email == "nobody@example.com"

    @pytest.mark.asyncio
    async def test_blank_identifier(self, controller, notifier):
        response = await controller.request_token(RecoveryRequest({"email": "   "}))

        assert isinstance(response, Render)
        assert response.status == 422
        assert response.errors.on("email") == ["can't be blank"]
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_missing_identifier(self, controller):
        response = await controller.request_token(RecoveryRequest())
        assert response.errors.on("email") == ["can't be blank"]

    @pytest.mark.asyncio
    async def test_malformed_identifier(self, controller, notifier):
        response = await request_reset(controller, "alice-at-example")

        assert response.errors.on("email") == ["is invalid"]
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_second_request_replaces_token(self, controller, notifier, store, alice, user_type):
        await request_reset(controller)
        await request_reset(controller)

        assert len(notifier.sent) == 2
        assert notifier.sent[0].token != notifier.sent[1].token
        stored = await store.get(user_type, alice.id)
        assert stored.reset_password_token == notifier.sent[1].token

    @pytest.mark.asyncio
    async def test_delivery_failure(self, user_type, store, signer, alice):
        from authcraft.testing import RecordingNotifier

        controller = PasswordRecoveryController(
            user_type, store, RecordingNotifier(fail=True), signer, config=RecoveryConfig()
        )
        response = await request_reset(controller)

        assert isinstance(response, Render)
        assert response.errors.on("base") == [DeliveryError.public_message]
        assert response.context["resource"].email == "alice@example.com"

    @pytest.mark.asyncio
    async def test_save_conflict_looks_like_unknown_identifier(self, user_type, store, notifier, signer, alice):
        controller = PasswordRecoveryController(
            user_type, StaleOnSaveStore(store), notifier, signer, config=RecoveryConfig()
        )
        known = await request_reset(controller)
        unknown = await request_reset(controller, "mallory@example.com")

        assert known == unknown
        assert isinstance(known, Redirect)
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_save_conflict_not_paranoid(self, user_type, store, notifier, signer, alice):
        controller = PasswordRecoveryController(
            user_type, StaleOnSaveStore(store), notifier, signer, config=RecoveryConfig(paranoid=False)
        )
        response = await request_reset(controller)

        assert isinstance(response, Render)
        assert response.errors.on("base") == [DeliveryError.public_message]
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_undecodable_identifier(self, store, notifier, signer):
        Plain = make_entity_type("recoverable")
        controller = PasswordRecoveryController(Plain, store, notifier, signer, config=RecoveryConfig())

        response = await request_reset(controller, "\ud800@example.com")

        assert isinstance(response, Redirect)
        assert response.flash == ("success", "send_instructions")
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_not_recoverable_type(self, store, notifier, signer):
        Plain = make_entity_type("validatable")
        user = Plain(email="plain@example.com")
        user.set_password(STRONG_PASSWORD)
        await store.create(user)

        controller = PasswordRecoveryController(Plain, store, notifier, signer, config=RecoveryConfig())
        response = await request_reset(controller, "plain@example.com")

        assert isinstance(response, Redirect)
        assert response.flash == ("success", "send_instructions")
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_custom_paths(self, user_type, store, notifier, signer, alice):
        controller = PasswordRecoveryController(
            user_type, store, notifier, signer,
            config=RecoveryConfig(sign_in_path="/login", after_sign_in_path="/dashboard"),
        )
        response = await request_reset(controller)
        assert response.location == "/login"


# ============================================================================
# Reset form
# ============================================================================

class TestShowResetForm:

    @pytest.mark.asyncio
    async def test_carries_token(self, controller, user_type):
        response = await controller.show_reset_form(RecoveryRequest({TOKEN_PARAM: "abc123"}))

        assert response.template == "passwords/edit"
        assert response.status == 200
        assert response.context[TOKEN_PARAM] == "abc123"
        assert isinstance(response.context["resource"], user_type)
        assert response.context["resource"].reset_password_token == "abc123"

    @pytest.mark.asyncio
    async def test_does_not_check_token(self, controller, notifier):
        response = await controller.show_reset_form(RecoveryRequest({TOKEN_PARAM: "bogus"}))
        assert not response.errors

    @pytest.mark.asyncio
    async def test_without_token(self, controller):
        response = await controller.show_reset_form(RecoveryRequest())

        assert response.context[TOKEN_PARAM] == ""
        assert response.context["resource"].reset_password_token is None


# ============================================================================
# Credential submission
# ============================================================================

class TestSubmitNewCredential:

    @pytest.mark.asyncio
    async def test_successful_reset(self, controller, store, notifier, signer, alice, user_type):
        await request_reset(controller)
        response = await controller.submit_new_credential(reset_params(notifier.last_token))

        assert isinstance(response, Redirect)
        assert response.location == "/"
        assert response.flash == ("success", "updated")
        assert response.flash_message == FLASH_MESSAGES["updated"]
        assert response.session.entity_id == alice.id

        assert [e.id for e in signer.signed_in] == [alice.id]

        stored = await store.get(user_type, alice.id)
        assert stored.valid_password(NEW_PASSWORD)
        assert not stored.valid_password(STRONG_PASSWORD)
        assert stored.reset_password_token is None
        assert stored.reset_password_sent_at is None

    @pytest.mark.asyncio
    async def test_token_is_single_use(self, controller, notifier, signer, alice):
        await request_reset(controller)
        token = notifier.last_token
        await controller.submit_new_credential(reset_params(token))

        response = await controller.submit_new_credential(reset_params(token, "yet-another-secret", "yet-another-secret"))

        assert isinstance(response, Render)
        assert response.errors.on(TOKEN_PARAM) == ["is invalid"]
        assert len(signer.signed_in) == 1

    @pytest.mark.asyncio
    async def test_expired_token(self, controller, store, notifier, signer, clock, alice, user_type):
        await request_reset(controller)
        clock.advance(hours=6, seconds=1)

        response = await controller.submit_new_credential(reset_params(notifier.last_token))

        assert isinstance(response, Render)
        assert response.errors.on(TOKEN_PARAM) == ["has expired, please request a new one"]
        assert signer.signed_in == []
        stored = await store.get(user_type, alice.id)
        assert stored.valid_password(STRONG_PASSWORD)

    @pytest.mark.asyncio
    async def test_token_valid_at_window_edge(self, controller, notifier, signer, clock, alice):
        await request_reset(controller)
        clock.advance(hours=6)

        response = await controller.submit_new_credential(reset_params(notifier.last_token))
        assert isinstance(response, Redirect)

    @pytest.mark.asyncio
    async def test_unknown_token(self, controller, signer, alice):
        response = await controller.submit_new_credential(reset_params("made-up-token"))

        assert response.errors.on(TOKEN_PARAM) == ["is invalid"]
        assert response.context[TOKEN_PARAM] == "made-up-token"
        assert signer.signed_in == []

    @pytest.mark.asyncio
    async def test_missing_token(self, controller, signer):
        response = await controller.submit_new_credential(RecoveryRequest({"password": NEW_PASSWORD}))

        assert response.errors.on(TOKEN_PARAM) == ["is invalid"]
        assert signer.signed_in == []

    @pytest.mark.asyncio
    async def test_replaced_token(self, controller, notifier, signer, alice):
        await request_reset(controller)
        first = notifier.last_token
        await request_reset(controller)

        response = await controller.submit_new_credential(reset_params(first))

        assert response.errors.on(TOKEN_PARAM) == ["is invalid"]
        assert signer.signed_in == []

    @pytest.mark.asyncio
    async def test_policy_failure_keeps_token(self, controller, store, notifier, signer, alice, user_type):
        await request_reset(controller)
        token = notifier.last_token

        response = await controller.submit_new_credential(reset_params(token, "abc", "abc"))

        assert isinstance(response, Render)
        assert response.errors.on("password") == ["is too short (minimum is 6 characters)"]
        assert response.context[TOKEN_PARAM] == token
        assert signer.signed_in == []

        stored = await store.get(user_type, alice.id)
        assert stored.reset_password_token == token
        assert stored.valid_password(STRONG_PASSWORD)

        retry = await controller.submit_new_credential(reset_params(token))
        assert isinstance(retry, Redirect)

    @pytest.mark.asyncio
    async def test_confirmation_mismatch(self, controller, notifier, signer, alice):
        await request_reset(controller)

        response = await controller.submit_new_credential(
            reset_params(notifier.last_token, NEW_PASSWORD, "something-different")
        )

        assert response.errors.on("password_confirmation") == ["doesn't match password"]
        assert signer.signed_in == []

    @pytest.mark.asyncio
    async def test_blank_password(self, controller, notifier, signer, alice):
        await request_reset(controller)

        response = await controller.submit_new_credential(RecoveryRequest({TOKEN_PARAM: notifier.last_token}))

        assert response.errors.on("password") == ["can't be blank"]
        assert signer.signed_in == []

    @pytest.mark.asyncio
    async def test_stale_save_does_not_sign_in(self, user_type, store, notifier, signer, alice):
        await request_reset(PasswordRecoveryController(user_type, store, notifier, signer, config=RecoveryConfig()))

        controller = PasswordRecoveryController(
            user_type, StaleOnSaveStore(store), notifier, signer, config=RecoveryConfig()
        )
        response = await controller.submit_new_credential(reset_params(notifier.last_token))

        assert isinstance(response, Render)
        assert response.errors.on("base") == [StaleEntity.public_message]
        assert signer.signed_in == []

    @pytest.mark.asyncio
    async def test_after_sign_in_path(self, user_type, store, notifier, signer, alice):
        controller = PasswordRecoveryController(
            user_type, store, notifier, signer,
            config=RecoveryConfig(after_sign_in_path="/dashboard"),
        )
        await request_reset(controller)
        response = await controller.submit_new_credential(reset_params(notifier.last_token))

        assert response.location == "/dashboard"

    @pytest.mark.asyncio
    async def test_sign_in_failure_still_redirects(self, user_type, store, notifier, alice):
        class BrokenSignIn:
            async def sign_in(self, entity):
                raise RuntimeError("session backend down")

        controller = PasswordRecoveryController(
            user_type, store, notifier, BrokenSignIn(), config=RecoveryConfig()
        )
        await request_reset(controller)
        response = await controller.submit_new_credential(reset_params(notifier.last_token))

        assert isinstance(response, Redirect)
        assert response.location == "/session/new"
        assert response.flash == ("success", "updated_not_active")
        assert response.flash_message == FLASH_MESSAGES["updated_not_active"]
        assert response.session is None

        stored = await store.get(user_type, alice.id)
        assert stored.valid_password(NEW_PASSWORD)
        assert stored.reset_password_token is None


# ============================================================================
# End to end with mail delivery
# ============================================================================

class TestMailedRecovery:

    @pytest.mark.asyncio
    async def test_token_from_email_resets_password(self, user_type, store, signer, alice):
        transport = OutboxTransport()
        notifier = MailNotifier(
            transport,
            config=MailConfig(reset_url="https://app.test/password/edit?reset_password_token={token}"),
        )
        controller = PasswordRecoveryController(user_type, store, notifier, signer, config=RecoveryConfig())

        await request_reset(controller)

        assert len(transport.outbox) == 1
        message = transport.outbox[0]
        assert message.to == ["alice@example.com"]
        token = re.search(r"reset_password_token=([\w-]+)", message.body).group(1)

        edit = await controller.show_reset_form(RecoveryRequest({TOKEN_PARAM: token}))
        response = await controller.submit_new_credential(reset_params(edit.context[TOKEN_PARAM]))

        assert isinstance(response, Redirect)
        assert signer.signed_in[0].id == alice.id

    @pytest.mark.asyncio
    async def test_transport_failure_becomes_form_error(self, user_type, store, signer, alice):
        transport = OutboxTransport()
        transport.fail_with = ConnectionError("smtp down")
        controller = PasswordRecoveryController(
            user_type, store, MailNotifier(transport, config=MailConfig()), signer, config=RecoveryConfig()
        )

        response = await request_reset(controller)

        assert isinstance(response, Render)
        assert response.errors.on("base") == [DeliveryError.public_message]
