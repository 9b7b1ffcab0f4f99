"""
Recovery token lifecycle: issue, validate, expire, consume.
"""

from datetime import timedelta

import pytest

from authcraft import RecoveryTokenManager, TokenState, TokenValidation
from authcraft.testing import FrozenClock

from conftest import make_entity_type


@pytest.fixture
def manager(clock):
    return RecoveryTokenManager(timedelta(hours=6), clock=clock)


@pytest.fixture
def entity():
    User = make_entity_type("recoverable")
    return User(email="t@example.com")


# ============================================================================
# Issue / validate
# ============================================================================

class TestIssue:

    def test_issue_stores_token_and_time(self, manager, entity, clock):
        token = manager.issue_token(entity)

        assert token
        assert entity.reset_password_token == token
        assert entity.reset_password_sent_at == clock()

    def test_tokens_are_unique(self, manager, entity):
        tokens = {manager.issue_token(entity) for _ in range(50)}
        assert len(tokens) == 50

    def test_token_is_url_safe(self, manager, entity):
        token = manager.issue_token(entity)
        assert all(c.isalnum() or c in "-_" for c in token)
        assert len(token) >= 43

    def test_issued_token_validates(self, manager, entity):
        token = manager.issue_token(entity)
        assert manager.validate_token(entity, token) is TokenValidation.VALID

    def test_reissue_invalidates_previous(self, manager, entity):
        first = manager.issue_token(entity)
        second = manager.issue_token(entity)

        assert manager.validate_token(entity, first) is TokenValidation.INVALID
        assert manager.validate_token(entity, second) is TokenValidation.VALID

    def test_reissue_restarts_window(self, manager, entity, clock):
        manager.issue_token(entity)
        clock.advance(hours=5)
        token = manager.issue_token(entity)
        clock.advance(hours=5)

        assert manager.validate_token(entity, token) is TokenValidation.VALID

    def test_wrong_token(self, manager, entity):
        manager.issue_token(entity)
        assert manager.validate_token(entity, "not-the-token") is TokenValidation.INVALID

    def test_empty_token(self, manager, entity):
        manager.issue_token(entity)
        assert manager.validate_token(entity, "") is TokenValidation.INVALID
        assert manager.validate_token(entity, None) is TokenValidation.INVALID

    def test_nothing_stored(self, manager, entity):
        assert manager.validate_token(entity, "anything") is TokenValidation.INVALID


# ============================================================================
# Expiry
# ============================================================================

class TestExpiry:

    def test_valid_at_exact_window(self, manager, entity, clock):
        token = manager.issue_token(entity)
        clock.advance(hours=6)
        assert manager.validate_token(entity, token) is TokenValidation.VALID

    def test_expired_just_after_window(self, manager, entity, clock):
        token = manager.issue_token(entity)
        clock.advance(hours=6, microseconds=1)
        assert manager.validate_token(entity, token) is TokenValidation.EXPIRED

    def test_expired_wrong_token_is_invalid(self, manager, entity, clock):
        manager.issue_token(entity)
        clock.advance(days=1)
        assert manager.validate_token(entity, "not-the-token") is TokenValidation.INVALID

    def test_missing_sent_at_is_expired(self, manager, entity):
        token = manager.issue_token(entity)
        entity.reset_password_sent_at = None
        assert manager.validate_token(entity, token) is TokenValidation.EXPIRED

    def test_expires_at(self, manager, entity, clock):
        assert manager.expires_at(entity) is None
        manager.issue_token(entity)
        assert manager.expires_at(entity) == clock() + timedelta(hours=6)

    def test_custom_window(self, entity):
        clock = FrozenClock()
        manager = RecoveryTokenManager(timedelta(minutes=30), clock=clock)
        token = manager.issue_token(entity)

        clock.advance(minutes=31)
        assert manager.validate_token(entity, token) is TokenValidation.EXPIRED

    def test_window_must_be_positive(self):
        with pytest.raises(ValueError):
            RecoveryTokenManager(timedelta(0))


# ============================================================================
# Consume / state
# ============================================================================

class TestConsume:

    def test_consume_clears_fields(self, manager, entity):
        manager.issue_token(entity)
        manager.consume_token(entity)

        assert entity.reset_password_token is None
        assert entity.reset_password_sent_at is None

    def test_consumed_token_is_invalid(self, manager, entity):
        token = manager.issue_token(entity)
        manager.consume_token(entity)
        assert manager.validate_token(entity, token) is TokenValidation.INVALID

    def test_state_machine(self, manager, entity, clock):
        assert manager.token_state(entity) is TokenState.NO_TOKEN

        manager.issue_token(entity)
        assert manager.token_state(entity) is TokenState.PENDING

        clock.advance(hours=7)
        assert manager.token_state(entity) is TokenState.EXPIRED

        manager.issue_token(entity)
        assert manager.token_state(entity) is TokenState.PENDING

        manager.consume_token(entity)
        assert manager.token_state(entity) is TokenState.NO_TOKEN


# ============================================================================
# Digested tokens
# ============================================================================

class TestDigestTokens:

    def test_stored_form_is_digest(self, entity, clock):
        manager = RecoveryTokenManager(timedelta(hours=6), digest_tokens=True, clock=clock)
        token = manager.issue_token(entity)

        assert entity.reset_password_token != token
        assert entity.reset_password_token == manager.stored_form(token)
        assert len(entity.reset_password_token) == 64

    def test_digest_round_trip(self, entity, clock):
        manager = RecoveryTokenManager(timedelta(hours=6), digest_tokens=True, clock=clock)
        token = manager.issue_token(entity)

        assert manager.validate_token(entity, token) is TokenValidation.VALID
        assert manager.validate_token(entity, entity.reset_password_token) is TokenValidation.INVALID


# ============================================================================
# Through the recoverable capability
# ============================================================================

class TestRecoverableBehavior:

    def test_default_window(self):
        User = make_entity_type("recoverable")
        assert User.capability_option("recoverable", "reset_password_within") == timedelta(hours=6)
        assert User.behavior("recoverable").reset_password_within == timedelta(hours=6)

    def test_window_option(self, clock):
        User = make_entity_type("recoverable", reset_password_within=timedelta(hours=1))
        User.behavior("recoverable").use_clock(clock)
        user = User(email="t@example.com")

        token = user.issue_recovery_token()
        clock.advance(minutes=61)

        assert user.validate_recovery_token(token) is TokenValidation.EXPIRED
        assert user.recovery_state() is TokenState.EXPIRED

    def test_entity_methods(self, user_type):
        user = user_type(email="t@example.com")
        token = user.issue_recovery_token()

        assert user.validate_recovery_token(token) is TokenValidation.VALID
        user.consume_recovery_token()
        assert user.recovery_state() is TokenState.NO_TOKEN

    def test_lookup_value_follows_digest_option(self):
        User = make_entity_type("recoverable", digest_tokens=True)
        user = User(email="t@example.com")
        token = user.issue_recovery_token()

        assert User.behavior("recoverable").lookup_value(token) == user.reset_password_token


# ============================================================================
# Undecodable input
# ============================================================================

class TestSurrogateInput:

    def test_lone_surrogate_is_invalid(self, manager, entity):
        manager.issue_token(entity)
        assert manager.validate_token(entity, "\udcff") is TokenValidation.INVALID

    def test_lone_surrogate_with_digest(self, entity, clock):
        manager = RecoveryTokenManager(timedelta(hours=6), digest_tokens=True, clock=clock)
        manager.issue_token(entity)

        assert len(manager.stored_form("\udcff")) == 64
        assert manager.validate_token(entity, "\udcff") is TokenValidation.INVALID

    def test_lone_surrogate_remember_token(self):
        User = make_entity_type("rememberable")
        user = User(email="t@example.com")
        user.remember_me()
        assert not user.valid_remember_token("\ud800")

    def test_lone_surrogate_confirmation_token(self):
        User = make_entity_type("confirmable")
        user = User(email="t@example.com")
        User.behavior("confirmable").generate_token(user)
        assert not user.confirm_by_token("\ud800")
