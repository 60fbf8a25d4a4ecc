"""
Tests for the session registry: admission, nickname rules and removal.
"""

import pytest

from casino_hub.error_types import ErrorType
from casino_hub.exceptions import ConnectionLimitExceeded, NicknameError


class TestAdmission:
    def test_admit_creates_unregistered_session(self, registry, make_connection):
        session = registry.admit(make_connection(), "198.51.100.4")

        assert session.session_id in registry
        assert session.registered is False
        assert session.nickname is None
        assert session.alive is True
        assert session.remote_address == "198.51.100.4"

    def test_session_ids_are_unique(self, registry, make_connection):
        first = registry.admit(make_connection())
        second = registry.admit(make_connection())
        assert first.session_id != second.session_id

    def test_connection_cap(self, registry, make_connection):
        for _ in range(3):
            registry.admit(make_connection())

        with pytest.raises(ConnectionLimitExceeded) as exc_info:
            registry.admit(make_connection())

        assert exc_info.value.max_connections == 3
        assert len(registry) == 3


class TestRegistration:
    def test_register_accepts_sanitized_nickname(self, registry, make_connection):
        session = registry.admit(make_connection())

        nickname = registry.register(session, "  <Lucky>  Joe ")

        assert nickname == "Lucky Joe"
        assert session.registered is True
        assert session.nickname == "Lucky Joe"

    def test_register_is_idempotent(self, registry, make_connection):
        session = registry.admit(make_connection())
        registry.register(session, "First")

        assert registry.register(session, "Second") is None
        assert session.nickname == "First"

    def test_too_short(self, registry, make_connection):
        session = registry.admit(make_connection())

        with pytest.raises(NicknameError) as exc_info:
            registry.register(session, " x ")

        assert exc_info.value.error_type is ErrorType.NICKNAME_TOO_SHORT
        assert session.registered is False

    def test_non_string_nickname_is_too_short(self, registry, make_connection):
        session = registry.admit(make_connection())
        with pytest.raises(NicknameError) as exc_info:
            registry.register(session, None)
        assert exc_info.value.error_type is ErrorType.NICKNAME_TOO_SHORT

    def test_uniqueness_is_case_insensitive(self, registry, make_connection):
        winner = registry.admit(make_connection())
        loser = registry.admit(make_connection())
        registry.register(winner, "Alice")

        with pytest.raises(NicknameError) as exc_info:
            registry.register(loser, "aLiCe")

        assert exc_info.value.error_type is ErrorType.NICKNAME_TAKEN
        assert loser.registered is False
        assert loser.nickname is None

    def test_unregistered_sessions_do_not_hold_names(self, registry, make_connection):
        registry.admit(make_connection())
        session = registry.admit(make_connection())
        assert registry.register(session, "Alice") == "Alice"

    @pytest.mark.parametrize("nickname", ["Admin", "superadmin", "SYSTEM", "mod_Moderator", "Система", "админ"])
    def test_reserved_words_are_forbidden(self, registry, make_connection, nickname):
        session = registry.admit(make_connection())

        with pytest.raises(NicknameError) as exc_info:
            registry.register(session, nickname)

        assert exc_info.value.error_type is ErrorType.NICKNAME_FORBIDDEN
        assert exc_info.value.user_friendly == "This nickname is not allowed"

    def test_is_nickname_taken_excludes_session(self, registry, make_connection):
        session = registry.admit(make_connection())
        registry.register(session, "Bob")

        assert registry.is_nickname_taken("BOB") is True
        assert registry.is_nickname_taken("bob", exclude_session_id=session.session_id) is False


class TestRemoval:
    def test_remove_frees_nickname_and_rate_state(self, registry, make_connection):
        session = registry.admit(make_connection())
        registry.register(session, "Carol")
        registry.rate_limiter.check_and_consume(session.session_id)

        removed = registry.remove(session.session_id)

        assert removed is session
        assert session.session_id not in registry
        assert session.session_id not in registry.rate_limiter.states
        assert registry.is_nickname_taken("Carol") is False

    def test_remove_is_idempotent(self, registry, make_connection):
        session = registry.admit(make_connection())
        registry.remove(session.session_id)
        assert registry.remove(session.session_id) is None

    def test_views(self, registry, make_connection):
        a = registry.admit(make_connection())
        b = registry.admit(make_connection())
        registry.register(a, "Dave")

        assert registry.get(b.session_id) is b
        assert registry.get("missing") is None
        assert {s.session_id for s in registry.sessions()} == {a.session_id, b.session_id}
        assert registry.registered_sessions() == [a]
