# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for knox/logging.py."""

import io
import logging

from knox.logging import REDACTED, SecretFilter, configure_logging
from tests.conftest import SECRET_KEY


def _record(msg: str, *args: object) -> logging.LogRecord:
    return logging.LogRecord(
        name="knox.auth",
        level=logging.DEBUG,
        pathname="",
        lineno=0,
        msg=msg,
        args=args,
        exc_info=None,
    )


class TestSecretFilter:
    """Tests for SecretFilter."""

    def test_never_suppresses(self) -> None:
        """Records are modified, never dropped."""
        assert SecretFilter().filter(_record("plain")) is True

    def test_passthrough_without_secrets(self) -> None:
        """Nothing is rewritten when no secret is registered."""
        record = _record(f"key {SECRET_KEY}")
        SecretFilter().filter(record)
        assert record.msg == f"key {SECRET_KEY}"

    def test_redacts_message(self) -> None:
        """A registered secret is replaced in the message."""
        SecretFilter.register_secret(SECRET_KEY)
        record = _record(f"signing with {SECRET_KEY}")
        SecretFilter().filter(record)
        assert record.msg == "signing with [REDACTED]"

    def test_redacts_string_args(self) -> None:
        """String arguments are redacted; others are left alone."""
        SecretFilter.register_secret(SECRET_KEY)
        record = _record("%s %d", SECRET_KEY, 403)
        SecretFilter().filter(record)
        assert record.args == ("[REDACTED]", 403)

    def test_regex_characters_escaped(self) -> None:
        """Base64 secrets with '+' and '/' are matched literally."""
        SecretFilter.register_secret("ab+cd/ef==")
        record = _record("secret ab+cd/ef== and abbcd/ef")
        SecretFilter().filter(record)
        assert record.msg == "secret [REDACTED] and abbcd/ef"

    def test_longest_secret_first(self) -> None:
        """A secret containing another is redacted as a whole."""
        SecretFilter.register_secret("short")
        SecretFilter.register_secret("shortandlong")
        record = _record("value shortandlong")
        SecretFilter().filter(record)
        assert record.msg == "value [REDACTED]"

    def test_empty_secret_ignored(self) -> None:
        """Empty strings are not registered."""
        SecretFilter.register_secret("")
        assert SecretFilter._pattern is None

    def test_redacts_mapping_args(self) -> None:
        """Values of dict-style arguments are redacted."""
        SecretFilter.register_secret(SECRET_KEY)
        record = _record("%(key)s", {"key": SECRET_KEY})
        SecretFilter().filter(record)
        assert record.args == {"key": REDACTED}

    def test_redact_helper(self) -> None:
        """redact() is usable outside of log records."""
        SecretFilter.register_secret("abc")
        assert SecretFilter.redact("xabcx") == f"x{REDACTED}x"

    def test_clear_secrets(self) -> None:
        """clear_secrets drops the registry and the pattern."""
        SecretFilter.register_secret("one")
        SecretFilter.clear_secrets()
        assert len(SecretFilter._secrets) == 0
        assert SecretFilter._pattern is None


class TestConfigureLogging:
    """Tests for configure_logging."""

    def teardown_method(self) -> None:
        """Reset logging after each test."""
        root = logging.getLogger()
        root.handlers.clear()
        root.setLevel(logging.WARNING)

    def test_sets_level(self) -> None:
        configure_logging(level=logging.DEBUG)
        assert logging.getLogger().level == logging.DEBUG

    def test_single_handler(self) -> None:
        """Repeated calls replace the handler instead of stacking."""
        configure_logging()
        configure_logging()
        assert len(logging.getLogger().handlers) == 1

    def test_secret_filter_attached(self) -> None:
        configure_logging(add_secret_filter=True)
        (handler,) = logging.getLogger().handlers
        assert any(isinstance(f, SecretFilter) for f in handler.filters)

    def test_without_secret_filter(self) -> None:
        configure_logging(add_secret_filter=False)
        (handler,) = logging.getLogger().handlers
        assert handler.filters == []

    def test_custom_format(self) -> None:
        configure_logging(format_string="%(message)s")
        (handler,) = logging.getLogger().handlers
        assert handler.formatter is not None
        assert handler.formatter._fmt == "%(message)s"

    def test_writes_redacted_output(self) -> None:
        """Records reach the given stream with secrets redacted."""
        stream = io.StringIO()
        configure_logging(format_string="%(message)s", stream=stream)
        SecretFilter.register_secret(SECRET_KEY)
        logging.getLogger("knox.test").warning("key=%s", SECRET_KEY)
        assert stream.getvalue() == f"key={REDACTED}\n"

    def test_caps_httpcore(self) -> None:
        """Transport internals stay quiet under --debug."""
        configure_logging(level=logging.DEBUG)
        assert logging.getLogger("httpcore").level == logging.INFO
