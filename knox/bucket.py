# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Bucket-bound object operations.

Every operation resolves keys through a ``BucketContext`` (virtual-hosted
addressing) and dispatches through the owning ``Client``.  Operations
are coroutines returning an ``Outcome``; an optional ``callback``
receives the same ``(error, response)`` pair.

``put_file`` reads the whole source file into memory before issuing the
request.  Use ``put_stream`` for large objects.
"""

from __future__ import annotations

import asyncio
import io
import logging
import mimetypes
import os
from collections.abc import AsyncIterable, AsyncIterator, Mapping
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from knox.client import Callback, Outcome, complete
from knox.context import BucketContext
from knox.errors import SourceStreamError, TransportError
from knox.request import HeaderValue, merge_headers


if TYPE_CHECKING:
    from knox.client import Client


logger = logging.getLogger(__name__)

#: Content type used when the name gives no hint.
DEFAULT_CONTENT_TYPE = "application/octet-stream"

#: Read size for streamed uploads.
DEFAULT_CHUNK_SIZE = 64 * 1024

#: Upload source accepted by ``Bucket.put_stream``.
StreamSource = BinaryIO | AsyncIterable[bytes]


def guess_content_type(name: str | os.PathLike[str]) -> str:
    """Guess a MIME type from a file name."""
    content_type, _ = mimetypes.guess_type(os.fspath(name))
    return content_type or DEFAULT_CONTENT_TYPE


def _has_header(headers: Mapping[str, HeaderValue] | None, name: str) -> bool:
    return any(k.lower() == name.lower() for k in headers or {})


def _remaining_size(stream: BinaryIO) -> int:
    """Bytes left between the stream position and the end of its file.

    Raises:
        OSError: If the stream is not backed by a file descriptor.
    """
    try:
        size = os.fstat(stream.fileno()).st_size
    except (AttributeError, io.UnsupportedOperation) as exc:
        raise OSError(f"cannot determine size of {stream!r}") from exc
    try:
        return size - stream.tell()
    except (AttributeError, io.UnsupportedOperation):
        return size


async def _iter_source(
    stream: StreamSource, chunk_size: int
) -> AsyncIterator[bytes]:
    """Yield chunks from *stream*, surfacing failures as SourceStreamError."""
    try:
        if isinstance(stream, AsyncIterable):
            async for chunk in stream:
                yield chunk
        else:
            while chunk := await asyncio.to_thread(stream.read, chunk_size):
                yield chunk
    except Exception as exc:
        raise SourceStreamError(f"Upload source failed: {exc}") from exc


class Bucket:
    """Object operations within one bucket.

    Attributes:
        client: Owning client (credentials and transport).
        name: Bucket name.
        context: Virtual-hosted endpoint context for the bucket.
    """

    def __init__(self, client: Client, name: str) -> None:
        """Initialize the bucket surface.

        Args:
            client: Owning client.
            name: Bucket name.

        Raises:
            ConfigurationError: If *name* is empty.
        """
        self.client = client
        self.name = name
        self.context = BucketContext.under(client.context, name)

    def __repr__(self) -> str:
        return f"Bucket({self.name!r}, endpoint={self.endpoint!r})"

    @property
    def endpoint(self) -> str:
        """Virtual host of the bucket."""
        return self.context.endpoint_host

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    async def put_buffer(
        self,
        data: bytes,
        key: str,
        headers: Mapping[str, HeaderValue] | None = None,
        callback: Callback | None = None,
    ) -> Outcome:
        """PUT an in-memory payload to *key*.

        ``Content-Length`` is defaulted from the payload.
        """
        merged = merge_headers({"Content-Length": len(data)}, headers)
        signed = self.client.put(key, merged, context=self.context)
        return await self.client.send(signed, data, callback)

    async def put_file(
        self,
        src: str | os.PathLike[str],
        key: str,
        headers: Mapping[str, HeaderValue] | None = None,
        callback: Callback | None = None,
    ) -> Outcome:
        """PUT the local file *src* to *key*.

        The entire file is read into memory first; it is held for the
        lifetime of the request.  ``Content-Length`` and
        ``Content-Type`` are defaulted from the file.

        Args:
            src: Local file path.
            key: Destination object key.
            headers: Extra or overriding headers.
            callback: Optional continuation receiving ``(error, response)``.

        Returns:
            The completion ``Outcome``.  A read failure is reported as a
            ``TransportError`` without issuing a request.
        """
        try:
            data = await asyncio.to_thread(Path(src).read_bytes)
        except OSError as exc:
            logger.warning("Cannot read upload source %s: %s", src, exc)
            error = TransportError(f"Cannot read {src}: {exc}")
            error.__cause__ = exc
            return complete(error, None, callback)

        defaults = {"Content-Type": guess_content_type(src)}
        return await self.put_buffer(
            data, key, merge_headers(defaults, headers), callback
        )

    async def put_stream(
        self,
        stream: StreamSource,
        key: str,
        headers: Mapping[str, HeaderValue] | None = None,
        callback: Callback | None = None,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> Outcome:
        """PUT data read from *stream* to *key* without buffering it whole.

        Args:
            stream: Binary file object, or async iterable of bytes.
            key: Destination object key.
            headers: Extra or overriding headers.  ``Content-Length`` is
                required here when *stream* is not backed by a file.
            callback: Optional continuation receiving ``(error, response)``.
            chunk_size: Read size for file objects.

        Returns:
            The completion ``Outcome``.  Errors raised by the source are
            reported as ``SourceStreamError`` in the error slot.
        """
        defaults: dict[str, HeaderValue] = {}
        name = getattr(stream, "name", None)
        if isinstance(name, str):
            defaults["Content-Type"] = guess_content_type(name)

        if not _has_header(headers, "Content-Length"):
            if isinstance(stream, AsyncIterable):
                error = SourceStreamError(
                    "Content-Length header is required for async sources"
                )
                return complete(error, None, callback)
            try:
                defaults["Content-Length"] = _remaining_size(stream)
            except OSError as exc:
                error = SourceStreamError(f"Cannot size upload source: {exc}")
                error.__cause__ = exc
                return complete(error, None, callback)

        signed = self.client.put(
            key, merge_headers(defaults, headers), context=self.context
        )
        return await self.client.send(
            signed, _iter_source(stream, chunk_size), callback
        )

    # ------------------------------------------------------------------
    # Reads and deletes
    # ------------------------------------------------------------------

    async def get_file(
        self,
        key: str,
        headers: Mapping[str, HeaderValue] | None = None,
        callback: Callback | None = None,
    ) -> Outcome:
        """GET *key*; the response body is fully read."""
        signed = self.client.get(key, headers, context=self.context)
        return await self.client.send(signed, callback=callback)

    async def head_file(
        self,
        key: str,
        headers: Mapping[str, HeaderValue] | None = None,
        callback: Callback | None = None,
    ) -> Outcome:
        """HEAD *key*."""
        signed = self.client.head(key, headers, context=self.context)
        return await self.client.send(signed, callback=callback)

    async def delete_file(
        self,
        key: str,
        headers: Mapping[str, HeaderValue] | None = None,
        callback: Callback | None = None,
    ) -> Outcome:
        """DELETE *key*."""
        signed = self.client.delete(key, headers, context=self.context)
        return await self.client.send(signed, callback=callback)

    # ------------------------------------------------------------------
    # Bucket-level operations
    # ------------------------------------------------------------------

    async def create(
        self,
        headers: Mapping[str, HeaderValue] | None = None,
        callback: Callback | None = None,
    ) -> Outcome:
        """Create the bucket (``PUT /``)."""
        signed = self.client.put("/", headers, context=self.context)
        return await self.client.send(signed, callback=callback)

    async def remove(
        self,
        headers: Mapping[str, HeaderValue] | None = None,
        callback: Callback | None = None,
    ) -> Outcome:
        """Delete the bucket (``DELETE /``); it must be empty."""
        signed = self.client.delete("/", headers, context=self.context)
        return await self.client.send(signed, callback=callback)

    async def list(
        self,
        prefix: str | None = None,
        *,
        marker: str | None = None,
        max_keys: int | None = None,
        delimiter: str | None = None,
        headers: Mapping[str, HeaderValue] | None = None,
        callback: Callback | None = None,
    ) -> Outcome:
        """List objects (``GET /``); the XML body is returned unparsed.

        Args:
            prefix: Only keys starting with this prefix.
            marker: Start listing after this key.
            max_keys: Maximum number of keys in the response.
            delimiter: Group keys sharing a prefix up to this character.
            headers: Extra headers.
            callback: Optional continuation receiving ``(error, response)``.
        """
        params = {
            name: str(value)
            for name, value in (
                ("prefix", prefix),
                ("marker", marker),
                ("max-keys", max_keys),
                ("delimiter", delimiter),
            )
            if value is not None
        }
        signed = self.client.get(
            "/", headers, context=self.context, params=params
        )
        return await self.client.send(signed, callback=callback)

    # ------------------------------------------------------------------
    # URLs
    # ------------------------------------------------------------------

    def url(self, key: str | None) -> str:
        """Public URL of *key* in this bucket."""
        return self.context.url(key)

    def signed_url(
        self,
        key: str | None,
        expiration: datetime | float,
        *,
        verb: str = "GET",
    ) -> str:
        """Presigned URL of *key*, valid until *expiration*."""
        return self.client.signed_url(
            key, expiration, context=self.context, verb=verb
        )
