# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Client configuration.

A ``ClientConfig`` is an immutable value created once per client and
passed by reference into every request build.  It can be built
directly, from keyword options (``from_options``), or loaded from a
YAML file.  The default file location follows the XDG Base Directory
Specification:

    ``$XDG_CONFIG_HOME/knox/knox.yaml``
    (typically ``~/.config/knox/knox.yaml``)

``!env`` tags resolve values from environment variables::

    credentials:
      access_key: !env AWS_ACCESS_KEY_ID
      secret_key: !env AWS_SECRET_ACCESS_KEY
    endpoint: s3-eu-west-1.amazonaws.com
    default_acl: private
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from platformdirs import user_config_path

from knox.context import DEFAULT_ENDPOINT, ClientContext
from knox.dotenv_loader import load_dotenv_once
from knox.errors import ConfigurationError
from knox.logging import SecretFilter


logger = logging.getLogger(__name__)

#: Application name for XDG path resolution.
_APP_NAME = "knox"

_BOOL_TRUTHY = frozenset({"true", "1", "yes", "on"})
_BOOL_FALSY = frozenset({"false", "0", "no", "off"})

# Option aliases accepted by ``from_options``.
_OPTION_ALIASES = {"key": "access_key", "secret": "secret_key"}


def get_config_path() -> Path:
    """Return the default config file path.

    Returns:
        ``$XDG_CONFIG_HOME/knox/knox.yaml``.
    """
    return user_config_path(_APP_NAME) / "knox.yaml"


def get_dotenv_path() -> Path:
    """Return the default ``.env`` file path inside the XDG config directory.

    Returns:
        ``$XDG_CONFIG_HOME/knox/.env``.
    """
    return user_config_path(_APP_NAME) / ".env"


# ---------------------------------------------------------------------------
# YAML tag placeholders
# ---------------------------------------------------------------------------


class _EnvVar:
    """Placeholder for an unresolved ``!env VAR_NAME`` tag."""

    def __init__(self, var_name: str) -> None:
        self.var_name = var_name


def _env_constructor(loader: yaml.SafeLoader, node: yaml.Node) -> _EnvVar:
    """Handle ``!env VAR_NAME`` in YAML."""
    value = loader.construct_scalar(node)
    return _EnvVar(str(value))


def _make_loader() -> type[yaml.SafeLoader]:
    """Create a YAML loader that understands ``!env``."""

    class EnvLoader(yaml.SafeLoader):
        pass

    EnvLoader.add_constructor("!env", _env_constructor)
    return EnvLoader


# ---------------------------------------------------------------------------
# Value resolution
# ---------------------------------------------------------------------------


def _coerce_bool(value: object) -> bool:
    """Coerce a value to bool, handling string representations."""
    if isinstance(value, bool):
        return value
    s = str(value).lower().strip()
    if s in _BOOL_TRUTHY:
        return True
    if s in _BOOL_FALSY:
        return False
    raise ConfigurationError(f"Cannot convert {value!r} to bool")


def _resolve(
    value: object,
    coerce: type[Any],
    *,
    default: object = None,
    field_name: str = "",
) -> Any:
    """Resolve a YAML value, handling ``!env`` tags and type coercion.

    Args:
        value: Raw value from YAML (may be ``_EnvVar``, None, or a
            literal already parsed by PyYAML).
        coerce: Target type (``str``, ``int``, ``float``, ``bool``).
        default: Returned when the value is absent.
        field_name: Name used in error messages.

    Returns:
        The resolved, coerced value, or *default* when absent.

    Raises:
        ConfigurationError: If the value cannot be coerced.
    """
    if isinstance(value, _EnvVar):
        raw = os.environ.get(value.var_name)
        if raw is None:
            logger.debug(
                "Config '%s': environment variable %s is not set",
                field_name,
                value.var_name,
            )
            return default
        value = raw

    if value is None:
        return default
    if coerce is bool:
        return _coerce_bool(value)
    if isinstance(value, coerce):
        return value
    try:
        return coerce(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            f"Config '{field_name}': cannot convert {value!r} "
            f"to {coerce.__name__}"
        ) from exc


# ---------------------------------------------------------------------------
# Client configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClientConfig:
    """Immutable client configuration.

    Attributes:
        access_key: Access key ID.
        secret_key: Secret access key.
        endpoint: Service endpoint host.
        secure: Use ``https`` for requests and URLs.
        port: Explicit port, or None for the scheme default.
        default_acl: ``x-amz-acl`` value defaulted on writes.
        timeout: Transport timeout in seconds.
    """

    access_key: str
    secret_key: str
    endpoint: str = DEFAULT_ENDPOINT
    secure: bool = False
    port: int | None = None
    default_acl: str = "public-read"
    timeout: float = 30.0

    def __post_init__(self) -> None:
        """Validate credentials and register the secret for redaction.

        Raises:
            ConfigurationError: If a credential or the endpoint is missing.
        """
        if not self.access_key:
            raise ConfigurationError('"access_key" required')
        if not self.secret_key:
            raise ConfigurationError('"secret_key" required')
        if not self.endpoint:
            raise ConfigurationError('"endpoint" must not be empty')
        SecretFilter.register_secret(self.secret_key)

    @property
    def context(self) -> ClientContext:
        """Client-level endpoint context for this configuration."""
        return ClientContext(
            endpoint=self.endpoint, secure=self.secure, port=self.port
        )

    @classmethod
    def from_options(cls, **options: Any) -> ClientConfig:
        """Build a config from keyword options.

        Accepts the field names plus the aliases ``key`` and ``secret``.
        A ``None`` value means "use the default".

        Raises:
            ConfigurationError: On unknown options or missing credentials.
        """
        fields: dict[str, Any] = {}
        for name, value in options.items():
            name = _OPTION_ALIASES.get(name, name)
            if name not in cls.__dataclass_fields__:
                raise ConfigurationError(f"Unknown client option: {name!r}")
            if value is not None:
                fields[name] = value
        fields.setdefault("access_key", "")
        fields.setdefault("secret_key", "")
        return cls(**fields)

    @classmethod
    def from_yaml(cls, config_path: Path | None = None) -> ClientConfig:
        """Load configuration from a YAML file.

        Values tagged with ``!env VAR_NAME`` are resolved from the
        environment at load time.  ``.env`` files are loaded first if
        present.

        Args:
            config_path: Path to YAML config file.  Defaults to
                ``~/.config/knox/knox.yaml`` (XDG).

        Returns:
            ClientConfig instance.

        Raises:
            ConfigurationError: If the file is missing or malformed, or
                required values are absent.
        """
        load_dotenv_once()

        if config_path is None:
            config_path = get_config_path()

        if not config_path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")

        try:
            with open(config_path) as f:
                raw = yaml.load(f, Loader=_make_loader())
        except yaml.YAMLError as exc:
            raise ConfigurationError(
                f"Invalid YAML in {config_path}: {exc}"
            ) from exc

        if not isinstance(raw, dict):
            raise ConfigurationError(
                f"Config file must be a YAML mapping: {config_path}"
            )

        logger.debug("Loaded client config from %s", config_path)
        return cls._from_raw(raw)

    @classmethod
    def _from_raw(cls, raw: dict) -> ClientConfig:
        """Build config from parsed (but unresolved) YAML dict."""
        credentials = raw.get("credentials") or {}
        if not isinstance(credentials, dict):
            raise ConfigurationError("Config 'credentials' must be a mapping")

        return cls(
            access_key=_resolve(
                credentials.get("access_key"),
                str,
                default="",
                field_name="credentials.access_key",
            ),
            secret_key=_resolve(
                credentials.get("secret_key"),
                str,
                default="",
                field_name="credentials.secret_key",
            ),
            endpoint=_resolve(
                raw.get("endpoint"),
                str,
                default=DEFAULT_ENDPOINT,
                field_name="endpoint",
            ),
            secure=_resolve(
                raw.get("secure"), bool, default=False, field_name="secure"
            ),
            port=_resolve(raw.get("port"), int, field_name="port"),
            default_acl=_resolve(
                raw.get("default_acl"),
                str,
                default="public-read",
                field_name="default_acl",
            ),
            timeout=_resolve(
                raw.get("timeout"), float, default=30.0, field_name="timeout"
            ),
        )
