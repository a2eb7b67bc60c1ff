"""
Configuration for authkeys.

The configuration lives in a JSON file (``/etc/authkeys.json`` unless the
``AUTHKEYS_CONFIG`` environment variable names another one) and is read once
per invocation into an immutable :class:`AuthkeysConfig`.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

#: Environment variable naming the configuration file
CONFIG_ENV_VAR = "AUTHKEYS_CONFIG"
#: Configuration file used when :data:`CONFIG_ENV_VAR` is not set
DEFAULT_CONFIG_PATH = Path("/etc/authkeys.json")
#: Dial timeout, in seconds, used when none (or zero) is configured
DEFAULT_DIAL_TIMEOUT = 5


class AuthkeysConfig(BaseModel):
    """
    Directory connection and lookup settings.

    Field aliases are the key names used in the JSON configuration file;
    the Python attribute names are accepted as keys too.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    #: Hostname of the LDAP server.  Also the name its certificate must match.
    ldap_server: str = Field(alias="LDAPServer", min_length=1)
    ldap_port: int = Field(default=389, alias="LDAPPort", ge=1, le=65535)
    #: Seconds to wait for the TCP connection, and for each later operation
    dial_timeout: int = Field(default=DEFAULT_DIAL_TIMEOUT, alias="DialTimeout")
    base_dn: str = Field(alias="BaseDN", min_length=1)
    #: The ``ou`` under ``base_dn`` that holds group objects
    group_object: str = Field(default="groups", alias="GroupObject")
    key_attribute: str = Field(default="sshPublicKey", alias="KeyAttribute")
    user_attribute: str = Field(default="uid", alias="UserAttribute")
    #: Appended to usernames before searching, e.g. ``@example.com``
    user_postfix: str = Field(default="", alias="UserPostfix")
    root_ca_file: Path | None = Field(default=None, alias="RootCAFile")
    bind_dn: str | None = Field(default=None, alias="BindDN")
    bind_pw: str | None = Field(default=None, alias="BindPW", repr=False)

    @field_validator("dial_timeout", mode="before")
    @classmethod
    def default_dial_timeout(cls, value: Any) -> Any:
        if value is None or value == 0:
            return DEFAULT_DIAL_TIMEOUT
        return value

    @field_validator("dial_timeout")
    @classmethod
    def positive_dial_timeout(cls, value: int) -> int:
        if value < 0:
            msg = f"DialTimeout must not be negative, got {value}"
            raise ValueError(msg)
        return value

    @field_validator("root_ca_file", "bind_dn", "bind_pw", mode="before")
    @classmethod
    def empty_is_unset(cls, value: Any) -> Any:
        if value == "":
            return None
        return value

    @model_validator(mode="after")
    def bind_credentials_together(self) -> "AuthkeysConfig":
        if (self.bind_dn is None) != (self.bind_pw is None):
            msg = "BindDN and BindPW must be set together"
            raise ValueError(msg)
        return self

    @property
    def uri(self) -> str:
        """The ``ldap://`` URI for our server."""
        return f"ldap://{self.ldap_server}:{self.ldap_port}"

    @property
    def has_bind_credentials(self) -> bool:
        return self.bind_dn is not None and self.bind_pw is not None

    def group_dn(self, group: str) -> str:
        """
        Return the fully qualified DN of the group with common name ``group``.

        Args:
            group: the group's common name

        Returns:
            A DN like ``cn=admins,ou=groups,dc=example,dc=com``.

        """
        return f"cn={group},ou={self.group_object},{self.base_dn}"


def config_path_from_env() -> Path:
    """
    Return the configuration file path named by ``AUTHKEYS_CONFIG``, or the
    default path if that is unset or empty.
    """
    return Path(os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)


def load_config(path: Path | str | None = None) -> AuthkeysConfig:
    """
    Read and validate a JSON configuration file.

    Args:
        path: the file to read.  Defaults to :func:`config_path_from_env`.

    Raises:
        ConfigurationError: the file is missing, unreadable, not JSON, or
            does not describe a valid configuration.

    Returns:
        The loaded configuration.

    """
    config_path = Path(path) if path is not None else config_path_from_env()
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        msg = f"Configuration file does not exist: {config_path}"
        raise ConfigurationError(msg) from exc
    except OSError as exc:
        msg = f"Unable to read configuration file {config_path}: {exc}"
        raise ConfigurationError(msg) from exc
    except ValueError as exc:
        msg = f"Configuration file {config_path} is not valid JSON: {exc}"
        raise ConfigurationError(msg) from exc
    if not isinstance(data, dict):
        msg = f"Configuration file {config_path} must contain a JSON object"
        raise ConfigurationError(msg)
    try:
        config = AuthkeysConfig.model_validate(data)
    except ValidationError as exc:
        msg = f"Invalid configuration in {config_path}: {exc}"
        raise ConfigurationError(msg) from exc
    logger.debug("config.loaded path=%s server=%s", config_path, config.uri)
    return config
