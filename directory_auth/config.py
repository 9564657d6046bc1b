"""Configuration for directory_auth.

Validates LDAP parameters with a voluptuous schema. They can be supplied as a
mapping by the host application or read from the 'ldap_auth:' section of a
YAML configuration file.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import voluptuous as vol
import yaml

from .const import (
    DOMAIN,
    CONF_URI,
    CONF_BASE_DN,
    CONF_FOLLOW_REFERRALS,
    CONF_SEARCH_USER_NAME,
    CONF_SEARCH_USER_PASSWORD,
    CONF_OBJECT_CLASS,
    CONF_LOGIN_ATTRIBUTE,
    CONF_PROTOCOL_VERSION,
    CONF_OPERATION_TIMEOUT,
    CONF_CONNECT_TIMEOUT,
    CONF_VERIFY_SSL,
    CONF_USE_STARTTLS,
    CONF_GROUP,
    CONF_DISPLAY_ATTRIBUTE,
    DEFAULT_FOLLOW_REFERRALS,
    DEFAULT_OBJECT_CLASS,
    DEFAULT_LOGIN_ATTRIBUTE,
    DEFAULT_PROTOCOL_VERSION,
    DEFAULT_OPERATION_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_VERIFY_SSL,
    DEFAULT_USE_STARTTLS,
    DEFAULT_DISPLAY_ATTRIBUTE,
)
from .ldap import InvalidConfiguration

URI_SCHEMES = ("ldap://", "ldaps://", "ldapi://")


def _uri(value: Any) -> str:
    value = str(value).strip()
    if not value.lower().startswith(URI_SCHEMES):
        raise vol.Invalid(f"expected an URI starting with one of {', '.join(URI_SCHEMES)}")
    return value


def _string(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _required_string(value: Any) -> str:
    value = _string(value)
    if not value:
        raise vol.Invalid("must not be empty")
    return value


def _optional_string(value: Any) -> Optional[str]:
    return _string(value) or None


_positive_int = vol.All(vol.Coerce(int), vol.Range(min=1))

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_URI): _uri,
        vol.Required(CONF_BASE_DN): _required_string,
        vol.Optional(CONF_FOLLOW_REFERRALS, default=DEFAULT_FOLLOW_REFERRALS): vol.Boolean(),
        vol.Optional(CONF_SEARCH_USER_NAME, default=""): _string,
        # passwords are taken verbatim
        vol.Optional(CONF_SEARCH_USER_PASSWORD, default=""): vol.Any(None, vol.Coerce(str)),
        vol.Optional(CONF_OBJECT_CLASS, default=DEFAULT_OBJECT_CLASS): _required_string,
        vol.Optional(CONF_LOGIN_ATTRIBUTE, default=DEFAULT_LOGIN_ATTRIBUTE): _required_string,
        vol.Optional(CONF_PROTOCOL_VERSION, default=DEFAULT_PROTOCOL_VERSION): vol.All(vol.Coerce(int), vol.In([2, 3])),
        vol.Optional(CONF_OPERATION_TIMEOUT, default=DEFAULT_OPERATION_TIMEOUT): _positive_int,
        vol.Optional(CONF_CONNECT_TIMEOUT, default=DEFAULT_CONNECT_TIMEOUT): _positive_int,
        vol.Optional(CONF_VERIFY_SSL, default=DEFAULT_VERIFY_SSL): vol.Boolean(),
        vol.Optional(CONF_USE_STARTTLS, default=DEFAULT_USE_STARTTLS): vol.Boolean(),
        vol.Optional(CONF_GROUP, default=None): _optional_string,
        vol.Optional(CONF_DISPLAY_ATTRIBUTE, default=DEFAULT_DISPLAY_ATTRIBUTE): _required_string,
    },
    extra=vol.REMOVE_EXTRA,
)


@dataclass(frozen=True)
class LdapAuthConfig:
    """Validated LDAP parameters, fixed for the lifetime of an authenticator."""

    uri: str
    base_dn: str
    follow_referrals: bool = DEFAULT_FOLLOW_REFERRALS
    search_user_name: str = ""
    search_user_password: str = ""
    object_class: str = DEFAULT_OBJECT_CLASS
    login_attribute: str = DEFAULT_LOGIN_ATTRIBUTE
    protocol_version: int = DEFAULT_PROTOCOL_VERSION
    operation_timeout: int = DEFAULT_OPERATION_TIMEOUT
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT
    verify_ssl: bool = DEFAULT_VERIFY_SSL
    use_starttls: bool = DEFAULT_USE_STARTTLS
    group: Optional[str] = None
    display_attribute: str = DEFAULT_DISPLAY_ATTRIBUTE

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LdapAuthConfig":
        try:
            validated = CONFIG_SCHEMA(dict(data))
        except vol.Invalid as exc:
            raise InvalidConfiguration(f"Invalid LDAP configuration: {exc}") from exc
        if validated[CONF_SEARCH_USER_PASSWORD] is None:
            validated[CONF_SEARCH_USER_PASSWORD] = ""
        return cls(**validated)


def _config_path() -> Path:
    # config is typically mounted at /config in containers
    config_dir = os.environ.get("HASS_CONFIG", "/config")
    return Path(config_dir) / "configuration.yaml"


def load_config(path: Optional[str] = None) -> LdapAuthConfig:
    """Read and validate the 'ldap_auth:' section of a YAML file."""
    cfg_path = path or os.environ.get("LDAP_AUTH_CONFIG") or str(_config_path())
    try:
        with open(cfg_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as exc:
        raise InvalidConfiguration(f"Configuration file not found: {cfg_path}") from exc
    except (OSError, yaml.YAMLError) as exc:
        raise InvalidConfiguration(f"Failed to read/parse YAML: {cfg_path}: {exc}") from exc

    section = data.get(DOMAIN) if isinstance(data, dict) else None
    if not isinstance(section, dict):
        raise InvalidConfiguration(f"Missing or invalid '{DOMAIN}:' section in {cfg_path}")
    return LdapAuthConfig.from_dict(section)
