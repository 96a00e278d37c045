"""Tests for cirrus.errors: ErrorCode enum, app_error() and login messages."""
from unittest.mock import MagicMock

import pytest

from cirrus.errors import (
    ERROR_TITLE,
    ErrorCode,
    LoginError,
    LoginErrorKind,
    _MESSAGES,
    app_error,
    login_error_message,
)


class TestErrorCode:
    def test_all_codes_have_ci_prefix(self):
        for code in ErrorCode:
            assert code.value.startswith("CI-"), f"{code} missing CI- prefix"

    def test_all_codes_have_messages(self):
        for code in ErrorCode:
            assert code in _MESSAGES, f"{code} missing from _MESSAGES"

    def test_values_are_unique(self):
        values = [c.value for c in ErrorCode]
        assert len(values) == len(set(values))

    def test_known_values(self):
        assert ErrorCode.RC_CONNECT == "CI-RC01"
        assert ErrorCode.RC_LOAD == "CI-RC02"
        assert ErrorCode.RC_SAVE == "CI-RC03"
        assert ErrorCode.RC_DELETE == "CI-RC04"
        assert ErrorCode.AUTH_ROLLBACK == "CI-AUTH01"
        assert ErrorCode.CRASH_UPLOAD == "CI-CR01"


class TestAppError:
    def _make_widget(self):
        widget = MagicMock()
        widget.notify = MagicMock()
        return widget

    def test_calls_notify(self):
        widget = self._make_widget()
        app_error(widget, ErrorCode.RC_LOAD)
        widget.notify.assert_called_once()

    def test_title_severity_and_timeout(self):
        widget = self._make_widget()
        app_error(widget, ErrorCode.RC_SAVE)
        _, kwargs = widget.notify.call_args
        assert kwargs["title"] == ERROR_TITLE
        assert kwargs["severity"] == "error"
        assert kwargs["timeout"] == 12

    def test_reference_code_in_message(self):
        for code in ErrorCode:
            widget = self._make_widget()
            app_error(widget, code)
            message = widget.notify.call_args[0][0]
            assert code.value in message, f"Code {code.value} not found in message"

    def test_detail_appended_to_message(self):
        widget = self._make_widget()
        app_error(widget, ErrorCode.RC_DELETE, detail="directory not found")
        message = widget.notify.call_args[0][0]
        assert "directory not found" in message

    def test_no_detail_no_extra_space(self):
        widget = self._make_widget()
        app_error(widget, ErrorCode.RC_LOAD)
        message = widget.notify.call_args[0][0]
        assert "  \n" not in message

    def test_reference_section_format(self):
        widget = self._make_widget()
        app_error(widget, ErrorCode.AUTH_ROLLBACK)
        message = widget.notify.call_args[0][0]
        assert message.endswith("\n\nReference: CI-AUTH01")


class TestLoginError:
    def test_cancelled_flag(self):
        assert LoginError(LoginErrorKind.CANCELLED).is_cancelled
        assert not LoginError(LoginErrorKind.TOKEN, "boom").is_cancelled

    def test_detail_kept(self):
        error = LoginError(LoginErrorKind.AUTH_SERVER, "bind: address already in use")
        assert error.detail == "bind: address already in use"
        assert "address already in use" in str(error)


class TestLoginErrorMessage:
    def test_cancelled_shows_nothing(self):
        assert login_error_message(LoginError(LoginErrorKind.CANCELLED), "Dropbox") is None

    def test_auth_server_carries_detail(self):
        title, _, detail = login_error_message(
            LoginError(LoginErrorKind.AUTH_SERVER, "listen tcp: in use"), "Dropbox"
        )
        assert title == "Unable to start authentication server"
        assert detail == "listen tcp: in use"

    def test_token_carries_detail(self):
        title, _, detail = login_error_message(
            LoginError(LoginErrorKind.TOKEN, "access_denied"), "Dropbox"
        )
        assert title == "Unable to obtain token"
        assert detail == "access_denied"

    def test_name_resolution_mentions_server(self):
        title, body, detail = login_error_message(
            LoginError(LoginErrorKind.NAME_RESOLUTION, "no such host"), "the server"
        )
        assert title == "Authentication error"
        assert "unable to connect to the server" in body
        assert detail == ""

    @pytest.mark.parametrize(
        "kind, phrase",
        [
            (LoginErrorKind.INVALID_PASSWORD, "invalid password"),
            (LoginErrorKind.MISSING_TOTP, "2FA code is required"),
        ],
    )
    def test_classified_kinds_hide_raw_detail(self, kind, phrase):
        _, body, detail = login_error_message(LoginError(kind, "raw engine text"), "Proton Drive")
        assert phrase in body
        assert detail == ""

    def test_validity_unknown_shows_raw_text(self):
        _, body, detail = login_error_message(
            LoginError(LoginErrorKind.VALIDITY_UNKNOWN, "401 Unauthorized"), "pCloud"
        )
        assert "unable to authenticate to pCloud" in body
        assert detail == "401 Unauthorized"
