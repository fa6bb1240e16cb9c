# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Endpoint contexts: how a key maps to host, signed resource and wire path.

Two addressing modes exist:

- ``ClientContext`` talks to the service endpoint itself (bucket list,
  path-style access).  The signed resource and the wire path are both
  the normalized key.
- ``BucketContext`` uses virtual-hosted addressing.  The host is
  ``<bucket>.<endpoint>`` and the wire path is the normalized key, but
  the signed resource is ``/<bucket><key>`` because the service charges
  the signature against the bucket-qualified resource.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from knox.errors import ConfigurationError


#: Default service endpoint.
DEFAULT_ENDPOINT = "s3.amazonaws.com"


def normalize_key(key: str | None) -> str:
    """Normalize an object key to an absolute path.

    An empty key or ``/`` becomes ``/`` (bucket-level operations).  Any
    other key gets exactly one leading slash.

    Args:
        key: Raw object key, with or without leading slashes.

    Returns:
        Normalized path.
    """
    if not key or key == "/":
        return "/"
    return "/" + key.lstrip("/")


class EndpointContext(ABC):
    """Addressing capability shared by client- and bucket-level requests.

    Attributes:
        secure: Use ``https`` for URLs built from this context.
        port: Explicit port for URLs, or None for the scheme default.
    """

    secure: bool
    port: int | None

    @property
    @abstractmethod
    def endpoint_host(self) -> str:
        """Host that requests are sent to (also the ``Host`` header)."""

    @abstractmethod
    def canonical_resource_path(self, key: str | None) -> str:
        """Resource path that is signed for *key*."""

    def wire_path(self, key: str | None) -> str:
        """Path sent on the HTTP request line for *key*."""
        return normalize_key(key)

    @property
    def scheme(self) -> str:
        """URL scheme for this context."""
        return "https" if self.secure else "http"

    @property
    def base_url(self) -> str:
        """Scheme, host and optional port, without a trailing slash."""
        netloc = self.endpoint_host
        if self.port is not None:
            netloc = f"{netloc}:{self.port}"
        return f"{self.scheme}://{netloc}"

    def url(self, key: str | None) -> str:
        """Public URL of *key*."""
        return self.base_url + self.wire_path(key)


@dataclass(frozen=True)
class ClientContext(EndpointContext):
    """Service-level addressing.

    Attributes:
        endpoint: Service endpoint host.
        secure: Use ``https`` for URLs.
        port: Explicit port, or None.
    """

    endpoint: str = DEFAULT_ENDPOINT
    secure: bool = False
    port: int | None = None

    @property
    def endpoint_host(self) -> str:
        return self.endpoint

    def canonical_resource_path(self, key: str | None) -> str:
        return normalize_key(key)


@dataclass(frozen=True)
class BucketContext(EndpointContext):
    """Virtual-hosted bucket addressing.

    Attributes:
        bucket: Bucket name.
        parent_endpoint: Service endpoint host the bucket lives under.
        secure: Use ``https`` for URLs.
        port: Explicit port, or None.
    """

    bucket: str
    parent_endpoint: str = DEFAULT_ENDPOINT
    secure: bool = False
    port: int | None = None

    def __post_init__(self) -> None:
        """Validate the bucket name.

        Raises:
            ConfigurationError: If the bucket name is empty.
        """
        if not self.bucket:
            raise ConfigurationError("bucket name is required")

    @classmethod
    def under(cls, parent: ClientContext, bucket: str) -> BucketContext:
        """Create a bucket context below a client context."""
        return cls(
            bucket=bucket,
            parent_endpoint=parent.endpoint_host,
            secure=parent.secure,
            port=parent.port,
        )

    @property
    def endpoint_host(self) -> str:
        return f"{self.bucket}.{self.parent_endpoint}"

    def canonical_resource_path(self, key: str | None) -> str:
        # The bucket name stays in the signed resource even though the
        # host already carries it.
        return f"/{self.bucket}{normalize_key(key)}"
