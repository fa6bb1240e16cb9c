# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""knox: signed requests and presigned URLs for S3-style object storage."""

from knox.bucket import Bucket
from knox.client import Client, Outcome, create_client
from knox.config import ClientConfig
from knox.context import BucketContext, ClientContext, EndpointContext
from knox.errors import (
    ConfigurationError,
    KnoxError,
    SigningError,
    SourceStreamError,
    TransportError,
)
from knox.request import RequestBuilder, SignedRequest


__version__ = "0.1.0"

__all__ = [
    "Bucket",
    "BucketContext",
    "Client",
    "ClientConfig",
    "ClientContext",
    "ConfigurationError",
    "EndpointContext",
    "KnoxError",
    "Outcome",
    "RequestBuilder",
    "SignedRequest",
    "SigningError",
    "SourceStreamError",
    "TransportError",
    "__version__",
    "create_client",
]
