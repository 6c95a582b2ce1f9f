"""
Tests for structlog processors and the log-once helper.
"""

from unittest.mock import Mock

from ridemylay.exceptions import PersistenceError
from ridemylay.structured_logging.enhanced_logging_config import log_exception_once
from ridemylay.structured_logging.logging_processors import add_component, sanitize_sensitive_data


class TestSanitizeSensitiveData:
    def test_credentials_are_redacted(self):
        event = {"event": "Handshake", "token": "abc", "jwt_secret": "s", "auth": {"token": "abc"}}

        result = sanitize_sensitive_data(None, "info", event)

        assert result["token"] == "[REDACTED]"
        assert result["jwt_secret"] == "[REDACTED]"
        assert result["auth"] == {"token": "[REDACTED]"}
        assert result["event"] == "Handshake"

    def test_compound_credential_keys_are_redacted(self):
        event = {"access_token": "a", "auth_token": "b", "jwt_secret": "c", "api_key": "d", "db_password": "e"}

        result = sanitize_sensitive_data(None, "info", event)

        assert set(result.values()) == {"[REDACTED]"}

    def test_identifiers_survive(self):
        event = {"socket_id": "sid-1", "user_id": "u1", "room_key": "chat:c1", "author": "sam", "tokenizer": "ws"}

        assert sanitize_sensitive_data(None, "info", event) == event


class TestAddComponent:
    def test_component_from_logger_name(self):
        event = add_component(None, "info", {"logger": "ridemylay.realtime.socket_gateway"})

        assert event["component"] == "realtime"

    def test_foreign_logger_untouched(self):
        event = add_component(None, "info", {"logger": "uvicorn.error"})

        assert "component" not in event


class TestLogExceptionOnce:
    def test_second_call_for_same_exception_is_skipped(self):
        logger = Mock()
        error = PersistenceError("down", operation="list_unread")

        log_exception_once(logger, "error", "first", exc=error)
        log_exception_once(logger, "error", "second", exc=error)

        logger.error.assert_called_once()
        kwargs = logger.error.call_args.kwargs
        assert kwargs["error_type"] == "PersistenceError"
        assert kwargs["error"] == "down"

    def test_level_selects_method(self):
        logger = Mock()

        log_exception_once(logger, "warning", "presence", user_id="u1")

        logger.warning.assert_called_once_with("presence", user_id="u1")
