# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Request signing for the S3 legacy (HMAC-SHA1) authentication scheme.

Provides pure functions that turn an in-progress request into the exact
string the storage service signs on its side, and sign it:

- Canonical ``x-amz-*`` header block
- Header-auth string-to-sign (``Authorization: AWS key:signature``)
- Query-string-auth string-to-sign (presigned URLs)
- HMAC-SHA1 signature, base64 encoded

A single byte of difference between the string built here and the one
built by the service makes the request fail with 403, so every
function is deterministic and independent of header map ordering.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import urllib.parse
from collections.abc import Mapping


logger = logging.getLogger(__name__)

#: Prefix (lower-case) of provider headers that take part in signing.
AMZ_HEADER_PREFIX = "x-amz-"

#: Scheme name used in the ``Authorization`` header value.
AUTH_SCHEME = "AWS"


# ---------------------------------------------------------------------------
# Header helpers
# ---------------------------------------------------------------------------


def header_value(headers: Mapping[str, object], name: str) -> str:
    """Look up a header case-insensitively.

    Args:
        headers: Request headers (name -> value).
        name: Header name, any case.

    Returns:
        The header value as a string, or empty string when absent.
        When several names match, the last one in iteration order wins.
    """
    wanted = name.lower()
    found = ""
    for key, value in headers.items():
        if key.lower() == wanted:
            found = str(value)
    return found


def canonical_amz_headers(headers: Mapping[str, object]) -> str:
    """Build the canonical provider-header block.

    Only headers whose name starts with ``x-amz-`` (any case) are
    selected.  Names are lower-cased and sorted; each header becomes a
    ``name:value`` line terminated by a newline.  Values are trimmed.

    The result does not depend on the order or the case of distinct
    names.  Names that collide after lower-casing are combined into one
    line with comma-separated values in iteration order, which must be
    the order the values go on the wire.  ``RequestBuilder`` never
    produces such collisions because ``merge_headers`` keeps one entry
    per name.

    Args:
        headers: Request headers (name -> value).

    Returns:
        Canonical header block, or empty string when no provider
        headers are present.
    """
    selected: dict[str, list[str]] = {}
    for name, value in headers.items():
        lower = name.lower()
        if lower.startswith(AMZ_HEADER_PREFIX):
            selected.setdefault(lower, []).append(str(value).strip())

    return "".join(
        f"{name}:{','.join(selected[name])}\n" for name in sorted(selected)
    )


# ---------------------------------------------------------------------------
# String-to-sign
# ---------------------------------------------------------------------------


def build_string_to_sign(
    verb: str,
    resource: str,
    *,
    content_md5: str = "",
    content_type: str = "",
    date: str = "",
    amz_headers: str = "",
) -> str:
    """Build the header-auth string-to-sign.

    Format::

        VERB\\n
        Content-MD5\\n
        Content-Type\\n
        Date\\n
        CanonicalizedAmzHeaders + CanonicalizedResource

    Missing optional fields contribute an empty line, never a removed
    one.

    Args:
        verb: HTTP method (upper-case).
        resource: Canonical resource path.
        content_md5: ``Content-MD5`` header value, if any.
        content_type: ``Content-Type`` header value, if any.
        date: ``Date`` header value.
        amz_headers: Output of ``canonical_amz_headers``.

    Returns:
        String to sign.
    """
    return "\n".join(
        [verb, content_md5, content_type, date, amz_headers + resource]
    )


def string_to_sign_for_headers(
    verb: str, resource: str, headers: Mapping[str, object]
) -> str:
    """Build the header-auth string-to-sign from a full header map.

    Args:
        verb: HTTP method.
        resource: Canonical resource path.
        headers: Complete request headers, including ``Date``.

    Returns:
        String to sign.
    """
    return build_string_to_sign(
        verb,
        resource,
        content_md5=header_value(headers, "Content-MD5"),
        content_type=header_value(headers, "Content-Type"),
        date=header_value(headers, "Date"),
        amz_headers=canonical_amz_headers(headers),
    )


def build_query_string_to_sign(verb: str, expires: int, resource: str) -> str:
    """Build the query-string-auth string-to-sign.

    ``Content-MD5`` and ``Content-Type`` are always empty, the date line
    carries the expiry epoch and no provider headers are included.

    Args:
        verb: HTTP method the URL will be used with.
        expires: Expiry as whole epoch seconds.
        resource: Canonical resource path.

    Returns:
        String to sign.
    """
    return f"{verb}\n\n\n{expires}\n{resource}"


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------


def sign(secret_key: str, string_to_sign: str) -> str:
    """Compute the HMAC-SHA1 signature of a string-to-sign.

    Args:
        secret_key: Secret access key.
        string_to_sign: The string to sign.

    Returns:
        Base64-encoded signature on a single line.
    """
    digest = hmac.new(
        secret_key.encode("utf-8"),
        string_to_sign.encode("utf-8"),
        hashlib.sha1,
    ).digest()
    signature = base64.b64encode(digest).decode("ascii")
    logger.debug("Signed %r", string_to_sign)
    return signature


def authorization_header(access_key: str, signature: str) -> str:
    """Format the ``Authorization`` header value."""
    return f"{AUTH_SCHEME} {access_key}:{signature}"


def sign_request(
    *,
    access_key: str,
    secret_key: str,
    verb: str,
    resource: str,
    headers: Mapping[str, object],
) -> tuple[str, str]:
    """Sign a request for header-based authentication.

    Args:
        access_key: Access key ID.
        secret_key: Secret access key.
        verb: HTTP method.
        resource: Canonical resource path.
        headers: Complete request headers, including ``Date``.

    Returns:
        Tuple of (authorization header value, string to sign).
    """
    string_to_sign = string_to_sign_for_headers(verb, resource, headers)
    signature = sign(secret_key, string_to_sign)
    return authorization_header(access_key, signature), string_to_sign


def presigned_query(
    *,
    access_key: str,
    secret_key: str,
    resource: str,
    expires: int,
    verb: str = "GET",
) -> str:
    """Build the query string that authorizes a presigned URL.

    ``Expires`` and ``AWSAccessKeyId`` are embedded as-is; the signature
    is percent-encoded so that ``+``, ``/`` and ``=`` from base64 never
    appear raw.

    Args:
        access_key: Access key ID.
        secret_key: Secret access key.
        resource: Canonical resource path.
        expires: Expiry as whole epoch seconds.
        verb: HTTP method the URL will be used with.

    Returns:
        Query string without the leading ``?``.
    """
    signature = sign(
        secret_key, build_query_string_to_sign(verb, expires, resource)
    )
    return (
        f"Expires={expires}"
        f"&AWSAccessKeyId={access_key}"
        f"&Signature={urllib.parse.quote(signature, safe='')}"
    )
