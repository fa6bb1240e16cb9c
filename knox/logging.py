# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Logging setup with secret-key redaction.

Library modules only create loggers; handlers are installed by entry
points (the ``knox`` command line).  Every ``ClientConfig`` registers
its secret key with ``SecretFilter`` so it never reaches log output,
even at DEBUG level where strings-to-sign are logged.

Usage:
    # In entry points
    from knox.logging import configure_logging
    configure_logging(level=logging.DEBUG)

    # In library modules
    import logging
    logger = logging.getLogger(__name__)
    logger.debug("Signing %s %s", verb, resource)
"""

import logging
import re
from collections.abc import Mapping
from typing import IO, ClassVar


REDACTED = "[REDACTED]"

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class SecretFilter(logging.Filter):
    """Logging filter that redacts registered secrets.

    The registry is class-level: a secret registered once is redacted by
    every ``SecretFilter`` instance.  Message text, string arguments and
    string values of mapping arguments are rewritten.

    Example:
        SecretFilter.register_secret("wJalrXUtnFEMI/K7MDENG")
        handler.addFilter(SecretFilter())
        logger.info("secret=%s", "wJalrXUtnFEMI/K7MDENG")
        # Output: "secret=[REDACTED]"
    """

    _secrets: ClassVar[set[str]] = set()
    _pattern: ClassVar[re.Pattern[str] | None] = None

    @classmethod
    def redact(cls, text: str) -> str:
        """Return *text* with every registered secret replaced."""
        if cls._pattern is None:
            return text
        return cls._pattern.sub(REDACTED, text)

    @classmethod
    def _redact_arg(cls, arg: object) -> object:
        return cls.redact(arg) if isinstance(arg, str) else arg

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact registered secrets from *record*.

        Returns:
            Always True; records are rewritten, never dropped.
        """
        if self._pattern is None:
            return True
        record.msg = self.redact(str(record.msg))
        if isinstance(record.args, Mapping):
            record.args = {
                k: self._redact_arg(v) for k, v in record.args.items()
            }
        elif record.args:
            record.args = tuple(self._redact_arg(a) for a in record.args)
        return True

    @classmethod
    def register_secret(cls, secret: str) -> None:
        """Register a secret to be redacted from all log output.

        Empty strings and already registered secrets are ignored.
        """
        if secret and secret not in cls._secrets:
            cls._secrets.add(secret)
            cls._rebuild_pattern()

    @classmethod
    def clear_secrets(cls) -> None:
        """Forget all registered secrets. For testing."""
        cls._secrets.clear()
        cls._pattern = None

    @classmethod
    def _rebuild_pattern(cls) -> None:
        # Longest first so a secret containing another is fully redacted
        ordered = sorted(cls._secrets, key=len, reverse=True)
        cls._pattern = re.compile("|".join(map(re.escape, ordered)))


def configure_logging(
    level: int = logging.WARNING,
    format_string: str | None = None,
    add_secret_filter: bool = True,
    stream: IO[str] | None = None,
) -> None:
    """Install a single stream handler on the root logger.

    Existing root handlers are replaced.  The ``httpcore`` logger is
    capped at INFO so that ``--debug`` shows knox's own signing output
    rather than connection internals.

    Args:
        level: Root logger level.
        format_string: Log format; ``DEFAULT_FORMAT`` when None.
        add_secret_filter: Attach a ``SecretFilter`` to the handler.
        stream: Output stream; stderr when None.
    """
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(format_string or DEFAULT_FORMAT))
    if add_secret_filter:
        handler.addFilter(SecretFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for existing_handler in root_logger.handlers[:]:
        root_logger.removeHandler(existing_handler)
    root_logger.addHandler(handler)

    logging.getLogger("httpcore").setLevel(max(level, logging.INFO))
