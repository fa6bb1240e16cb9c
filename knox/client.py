# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Storage client: signed request dispatch over an async HTTP transport.

All network operations are coroutines.  Completion is reported in two
equivalent ways: the coroutine returns an ``Outcome`` and, when a
``callback`` is given, the callback is invoked with the same
``(error, response)`` pair.  Transport failures never raise across the
asynchronous boundary; they land in the error slot.  HTTP status codes
are passed through uninterpreted.

Example::

    async with create_client(key="AK", secret="SK") as client:
        bucket = client.bucket("my-bucket")
        error, response = await bucket.put_file("user.json", "/test/user.json")
        if error is None:
            print(response.status_code)
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, Callable, Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any, NamedTuple

import httpx

from knox.config import ClientConfig
from knox.context import ClientContext, EndpointContext
from knox.errors import TransportError
from knox.request import (
    Clock,
    HeaderValue,
    RequestBuilder,
    SignedRequest,
    utcnow,
)


if TYPE_CHECKING:
    from knox.bucket import Bucket


logger = logging.getLogger(__name__)

#: Request body accepted by ``Client.send``.
Content = bytes | AsyncIterable[bytes] | None


class Outcome(NamedTuple):
    """Completion of a request: exactly one slot is set."""

    error: TransportError | None
    response: httpx.Response | None


#: Continuation invoked with ``(error, response)`` on completion.
Callback = Callable[[TransportError | None, httpx.Response | None], Any]


def complete(
    error: TransportError | None,
    response: httpx.Response | None,
    callback: Callback | None,
) -> Outcome:
    """Deliver a completion to *callback* (if any) and return it."""
    if callback is not None:
        callback(error, response)
    return Outcome(error, response)


class Client:
    """Client bound to one set of credentials and one service endpoint.

    The client owns an ``httpx.AsyncClient`` unless one is injected.
    Request building is synchronous and free of I/O; only ``send`` and
    the operations built on it touch the network.

    Attributes:
        config: Immutable client configuration.
        context: Client-level endpoint context.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock = utcnow,
    ) -> None:
        """Initialize the client.

        Args:
            config: Client configuration (credentials already validated).
            http_client: Externally managed HTTP client.  Not closed by
                ``aclose``.
            transport: Transport for the owned HTTP client (ignored when
                *http_client* is given).
            clock: Current-time source for ``Date`` headers.
        """
        self.config = config
        self.context: ClientContext = config.context
        self._builder = RequestBuilder(config, clock)
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=config.timeout, transport=transport
        )

    @property
    def endpoint(self) -> str:
        """Service endpoint host."""
        return self.config.endpoint

    @property
    def builder(self) -> RequestBuilder:
        """Request builder used by this client."""
        return self._builder

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def request(
        self,
        verb: str,
        key: str | None,
        headers: Mapping[str, HeaderValue] | None = None,
        *,
        context: EndpointContext | None = None,
        params: Mapping[str, str] | None = None,
    ) -> SignedRequest:
        """Build a signed request against *context* (client when None)."""
        return self._builder.build(
            verb, context or self.context, key, headers, params
        )

    def put(
        self,
        key: str | None,
        headers: Mapping[str, HeaderValue] | None = None,
        *,
        context: EndpointContext | None = None,
    ) -> SignedRequest:
        """Build a signed PUT; ``Expect`` and ``x-amz-acl`` are defaulted."""
        return self.request("PUT", key, headers, context=context)

    def get(
        self,
        key: str | None,
        headers: Mapping[str, HeaderValue] | None = None,
        *,
        context: EndpointContext | None = None,
        params: Mapping[str, str] | None = None,
    ) -> SignedRequest:
        return self.request("GET", key, headers, context=context, params=params)

    def head(
        self,
        key: str | None,
        headers: Mapping[str, HeaderValue] | None = None,
        *,
        context: EndpointContext | None = None,
    ) -> SignedRequest:
        return self.request("HEAD", key, headers, context=context)

    def delete(
        self,
        key: str | None,
        headers: Mapping[str, HeaderValue] | None = None,
        *,
        context: EndpointContext | None = None,
    ) -> SignedRequest:
        return self.request("DELETE", key, headers, context=context)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def send(
        self,
        signed: SignedRequest,
        content: Content = None,
        callback: Callback | None = None,
    ) -> Outcome:
        """Issue a signed request.

        Args:
            signed: Request produced by ``request`` or a verb helper.
            content: Request body (bytes or async iterable of bytes).
            callback: Optional continuation receiving ``(error, response)``.

        Returns:
            The completion ``Outcome``.  Failed exchanges, including
            undecodable response bodies, land in the error slot.
        """
        request = self._http.build_request(
            signed.method, signed.url, headers=signed.headers, content=content
        )
        try:
            response = await self._http.send(request)
        except TransportError as exc:
            logger.warning("%s %s failed: %s", signed.method, signed.url, exc)
            return complete(exc, None, callback)
        except (httpx.RequestError, OSError) as exc:
            logger.warning("%s %s failed: %s", signed.method, signed.url, exc)
            error = TransportError(f"{signed.method} {signed.url}: {exc}")
            error.__cause__ = exc
            return complete(error, None, callback)

        logger.debug(
            "%s %s -> %d", signed.method, signed.url, response.status_code
        )
        if response.status_code == 403:
            logger.debug(
                "Request was rejected; local string-to-sign was %r",
                signed.string_to_sign,
            )
        return complete(None, response, callback)

    async def bucket_list(
        self,
        headers: Mapping[str, HeaderValue] | None = None,
        callback: Callback | None = None,
    ) -> Outcome:
        """List all buckets owned by the credentials (``GET /``)."""
        return await self.send(self.get("/", headers), callback=callback)

    # ------------------------------------------------------------------
    # Addressing
    # ------------------------------------------------------------------

    def bucket(self, name: str) -> Bucket:
        """Return a bucket-bound surface for *name*.

        Raises:
            ConfigurationError: If *name* is empty.
        """
        from knox.bucket import Bucket

        return Bucket(self, name)

    def url(self, key: str | None) -> str:
        """Public URL of *key* on the service endpoint."""
        return self.context.url(key)

    def signed_url(
        self,
        key: str | None,
        expiration: datetime | float,
        *,
        context: EndpointContext | None = None,
        verb: str = "GET",
    ) -> str:
        """Presigned URL of *key*, valid until *expiration*."""
        return self._builder.signed_url(
            context or self.context, key, expiration, verb
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Close the owned HTTP client."""
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def create_client(config: ClientConfig | None = None, **options: Any) -> Client:
    """Shortcut for ``Client(ClientConfig.from_options(**options))``.

    Args:
        config: Ready configuration.  When given, *options* may only
            contain the ``Client`` keyword arguments (``http_client``,
            ``transport``, ``clock``).
        **options: Configuration options (``key``/``access_key``,
            ``secret``/``secret_key``, ``endpoint``, ...) and ``Client``
            keyword arguments.

    Returns:
        A new client.

    Raises:
        ConfigurationError: If credentials are missing.
    """
    client_kwargs = {
        name: options.pop(name)
        for name in ("http_client", "transport", "clock")
        if name in options
    }
    if config is None:
        config = ClientConfig.from_options(**options)
    elif options:
        raise TypeError(
            f"Unexpected options with an explicit config: {sorted(options)}"
        )
    return Client(config, **client_kwargs)
