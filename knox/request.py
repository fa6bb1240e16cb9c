# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Signed request assembly and presigned URL generation.

``RequestBuilder.build`` merges default and caller headers, resolves
the endpoint context and signs the result.  It performs no I/O: the
returned ``SignedRequest`` is handed to the transport by
``knox.client.Client.send``.
"""

from __future__ import annotations

import logging
import math
import urllib.parse
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from email.utils import format_datetime

from knox import auth
from knox.config import ClientConfig
from knox.context import EndpointContext
from knox.errors import SigningError


logger = logging.getLogger(__name__)

#: HTTP verbs the service accepts with this signing scheme.
SUPPORTED_VERBS = frozenset({"GET", "PUT", "HEAD", "DELETE", "POST"})

#: Verbs that receive write defaults (``Expect`` and ``x-amz-acl``).
WRITE_VERBS = frozenset({"PUT"})

#: Header value types accepted from callers (ints for Content-Length).
HeaderValue = str | int

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


def http_date(moment: datetime) -> str:
    """Format *moment* as an RFC 1123 HTTP-date (always GMT)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return format_datetime(moment.astimezone(UTC), usegmt=True)


def merge_headers(
    base: Mapping[str, HeaderValue],
    overrides: Mapping[str, HeaderValue] | None,
) -> dict[str, str]:
    """Merge header maps case-insensitively.

    A name in *overrides* replaces every entry of *base* with the same
    name in any case; the override's spelling is kept.  Values are
    converted to strings.

    Args:
        base: Default headers.
        overrides: Caller headers, or None.

    Returns:
        New merged header dict.

    Raises:
        SigningError: If a header name is not a string.
    """
    merged: dict[str, str] = {}
    for source in (base, overrides or {}):
        for name, value in source.items():
            if not isinstance(name, str):
                raise SigningError(f"Header name must be a string: {name!r}")
            for existing in [k for k in merged if k.lower() == name.lower()]:
                del merged[existing]
            merged[name] = str(value)
    return merged


def to_epoch_seconds(expiration: datetime | float) -> int:
    """Convert an expiration instant to whole epoch seconds (floored).

    Naive datetimes are taken as UTC.
    """
    if isinstance(expiration, datetime):
        if expiration.tzinfo is None:
            expiration = expiration.replace(tzinfo=UTC)
        return math.floor(expiration.timestamp())
    return math.floor(expiration)


@dataclass(frozen=True)
class SignedRequest:
    """A fully signed request, ready for the transport.

    Attributes:
        method: HTTP method.
        url: Absolute URL (scheme, host, wire path and query).
        headers: Final header map including ``Authorization``.
        resource: Canonical resource path that was signed.
        string_to_sign: Exact string that was signed.
    """

    method: str
    url: str
    headers: dict[str, str]
    resource: str
    string_to_sign: str = field(repr=False)

    @property
    def authorization(self) -> str:
        """The ``Authorization`` header value."""
        return self.headers["Authorization"]


class RequestBuilder:
    """Builds signed requests for one client configuration.

    Every ``build`` call creates a fresh header map with its own
    ``Date``; nothing is shared between requests.
    """

    def __init__(self, config: ClientConfig, clock: Clock = utcnow) -> None:
        """Initialize the builder.

        Args:
            config: Client configuration holding the credentials.
            clock: Returns the current time; injectable for tests.
        """
        self._config = config
        self._clock = clock

    @property
    def config(self) -> ClientConfig:
        return self._config

    def default_headers(
        self, verb: str, context: EndpointContext
    ) -> dict[str, str]:
        """Return the default headers for *verb* against *context*."""
        headers = {
            "Date": http_date(self._clock()),
            "Host": context.endpoint_host,
        }
        if verb in WRITE_VERBS:
            headers["Expect"] = "100-continue"
            headers["x-amz-acl"] = self._config.default_acl
        return headers

    def build(
        self,
        verb: str,
        context: EndpointContext,
        key: str | None,
        headers: Mapping[str, HeaderValue] | None = None,
        params: Mapping[str, str] | None = None,
    ) -> SignedRequest:
        """Assemble and sign a request.

        Args:
            verb: HTTP method.
            context: Endpoint context resolving host and paths.
            key: Object key (``/`` or empty for bucket-level requests).
            headers: Caller headers; they override defaults of the same
                name (case-insensitive).
            params: Query parameters for the wire URL.  They are not
                part of the signed resource.

        Returns:
            The signed request.

        Raises:
            SigningError: If the verb is unsupported or a header name is
                invalid.
        """
        if not isinstance(verb, str) or verb.upper() not in SUPPORTED_VERBS:
            raise SigningError(f"Unsupported HTTP verb: {verb!r}")
        verb = verb.upper()

        merged = merge_headers(self.default_headers(verb, context), headers)
        resource = context.canonical_resource_path(key)
        authorization, string_to_sign = auth.sign_request(
            access_key=self._config.access_key,
            secret_key=self._config.secret_key,
            verb=verb,
            resource=resource,
            headers=merged,
        )
        merged["Authorization"] = authorization

        url = context.url(key)
        if params:
            url = f"{url}?{urllib.parse.urlencode(params)}"

        logger.debug("Built %s %s (resource %s)", verb, url, resource)
        return SignedRequest(
            method=verb,
            url=url,
            headers=merged,
            resource=resource,
            string_to_sign=string_to_sign,
        )

    def signed_url(
        self,
        context: EndpointContext,
        key: str | None,
        expiration: datetime | float,
        verb: str = "GET",
    ) -> str:
        """Return a presigned URL for *key*.

        Args:
            context: Endpoint context resolving host and paths.
            key: Object key.
            expiration: Expiry instant (datetime, or epoch seconds).
            verb: HTTP method the URL will be used with.

        Returns:
            URL carrying ``Expires``, ``AWSAccessKeyId`` and
            ``Signature`` query parameters.

        Raises:
            SigningError: If the verb is unsupported.
        """
        if verb.upper() not in SUPPORTED_VERBS:
            raise SigningError(f"Unsupported HTTP verb: {verb!r}")
        query = auth.presigned_query(
            access_key=self._config.access_key,
            secret_key=self._config.secret_key,
            resource=context.canonical_resource_path(key),
            expires=to_epoch_seconds(expiration),
            verb=verb.upper(),
        )
        return f"{context.url(key)}?{query}"
