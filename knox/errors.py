# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Exception hierarchy for knox.

Configuration and signing errors are raised synchronously.  Transport
errors never cross an asynchronous boundary: they are delivered through
the error slot of an ``Outcome`` (see ``knox.client``).
"""


class KnoxError(Exception):
    """Base exception for all knox errors."""


class ConfigurationError(KnoxError):
    """Missing credentials, missing bucket name or malformed config."""


class SigningError(KnoxError):
    """A request could not be signed because its inputs break the contract.

    Signing itself is a pure function; this is raised for programming
    errors such as an unsupported HTTP verb.
    """


class TransportError(KnoxError):
    """The HTTP exchange or the upload source failed.

    The underlying exception is chained as ``__cause__``.
    """


class SourceStreamError(TransportError):
    """The source of a streamed upload raised while being read."""
