"""directory_auth: authenticate users against an LDAP directory.

This package provides:
- DirectoryAuthenticator, which looks up user entries through a search user
  bind and verifies end user credentials and group membership
- a DirectoryClient capability with an ldap3 implementation
- a command line helper (``ldap-auth``) for hosts that authenticate through
  an external command
"""
from __future__ import annotations

from .authenticator import DirectoryAuthenticator
from .config import LdapAuthConfig, load_config
from .ldap import (
    DirectoryClient,
    Entry,
    InvalidConfiguration,
    InvalidOperation,
    Ldap3Client,
    LdapAuthError,
    LdapBindError,
    LdapConnectionError,
    LdapSearchError,
)

__all__ = [
    "DirectoryAuthenticator",
    "DirectoryClient",
    "Entry",
    "InvalidConfiguration",
    "InvalidOperation",
    "Ldap3Client",
    "LdapAuthConfig",
    "LdapAuthError",
    "LdapBindError",
    "LdapConnectionError",
    "LdapSearchError",
    "load_config",
]
