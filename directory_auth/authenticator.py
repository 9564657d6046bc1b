"""
Directory authenticator.
Look up user entries with a search user bind and verify end user credentials.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ldap3.core.exceptions import LDAPInvalidDnError
from ldap3.utils.dn import parse_dn

from .config import LdapAuthConfig
from .const import (
    GROUP_MEMBER_ATTRIBUTE,
    GROUP_OBJECT_CLASS,
    OPT_NETWORK_TIMEOUT,
    OPT_PROTOCOL_VERSION,
    OPT_REFERRALS,
    OPT_STARTTLS,
    OPT_TIMELIMIT,
    OPT_VERIFY_SSL,
)
from .ldap import (
    DirectoryClient,
    Entry,
    Ldap3Client,
    LdapBindError,
    LdapConnectionError,
    LdapSearchError,
    build_group_filter,
    build_user_filter,
)

_LOGGER = logging.getLogger(__name__)


class DirectoryAuthenticator():
    """Authenticate users against an LDAP directory.

    The search user connection is opened on first use and kept for the
    lifetime of the instance. End user credentials are checked on a second
    connection owned by the instance, so the search user binding is never
    replaced by an end user identity.

    Instances are not thread safe; use one per session or serialize access.
    """

    def __init__(self, config: LdapAuthConfig, client: Optional[DirectoryClient] = None):
        self.config = config
        self._client = client if client is not None else Ldap3Client()
        self._connection: Any = None
        self._bound = False
        self._user_connection: Any = None

    def __enter__(self) -> "DirectoryAuthenticator":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def bound(self) -> bool:
        return self._bound

    def _open(self) -> Any:
        handle = self._client.open(self.config.uri)
        if handle:
            self._client.configure(handle, OPT_PROTOCOL_VERSION, self.config.protocol_version)
            self._client.configure(handle, OPT_REFERRALS, self.config.follow_referrals)
            self._client.configure(handle, OPT_NETWORK_TIMEOUT, self.config.connect_timeout)
            self._client.configure(handle, OPT_TIMELIMIT, self.config.operation_timeout)
            self._client.configure(handle, OPT_VERIFY_SSL, self.config.verify_ssl)
            self._client.configure(handle, OPT_STARTTLS, self.config.use_starttls)
        if not handle:
            raise LdapConnectionError(
                self._client.last_error_code(handle),
                self._client.last_error_message(handle),
            )
        return handle

    def connect(self) -> None:
        """Establish the connection and bind the search user."""
        if self._connection and self._bound:
            return

        if not self._connection:
            _LOGGER.debug("Connecting to %s", self.config.uri)
            self._connection = self._open()

        # a handle left by a failed bind only needs the bind step again
        if not self._client.bind(self._connection, self.config.search_user_name, self.config.search_user_password):
            code = self._client.last_error_code(self._connection)
            message = self._client.last_error_message(self._connection)
            _LOGGER.warning("Search user bind failed for %s: %s", self.config.search_user_name or "<anonymous>", message)
            raise LdapBindError(code, message)
        self._bound = True
        _LOGGER.debug("Bound search user %s", self.config.search_user_name or "<anonymous>")

    def get_connection(self) -> Any:
        self.connect()
        return self._connection

    def close(self) -> None:
        for handle in (self._connection, self._user_connection):
            if handle:
                self._client.close(handle)
        self._connection = None
        self._user_connection = None
        self._bound = False

    def _search(self, search_filter: str) -> list[Entry]:
        connection = self.get_connection()
        _LOGGER.debug("Searching %s with filter %s", self.config.base_dn, search_filter)
        result = self._client.search(connection, self.config.base_dn, search_filter)
        if result is None:
            raise LdapSearchError(
                self._client.last_error_code(connection),
                self._client.last_error_message(connection),
            )
        return self._client.get_entries(connection, result)

    def search_uid(self, uid: str) -> Optional[Entry]:
        """Return the first entry whose login attribute matches uid, or None."""
        entries = self._search(build_user_filter(self.config.object_class, self.config.login_attribute, uid))
        return entries[0] if entries else None

    def authenticate(self, dn: str, password: str, group: Optional[str] = None) -> bool:
        """Check the credentials of dn and, if given, its membership of group.

        Wrong credentials or a missing membership return False; directory
        failures raise LdapAuthError subclasses.
        """
        if not dn or not password:
            # an empty password would make this an unauthenticated bind
            return False

        if not self._user_connection:
            self._user_connection = self._open()
        if not self._client.bind(self._user_connection, dn, password):
            _LOGGER.info("Authentication failed for %s", dn)
            return False

        if not group:
            _LOGGER.info("Authenticated %s", dn)
            return True

        member = self.is_user_in_a_group(dn, group)
        _LOGGER.info("Authenticated %s, member of %s: %s", dn, group, member)
        return member

    def is_user_in_a_group(self, dn: str, group: str) -> bool:
        """Return True if dn is a uniqueMember of a group named group.

        The name is compared, case-insensitively, with the value of the first
        RDN of each group's DN: "admins" matches "cn=admins,ou=groups,..." but
        neither "cn=sysadmins,..." nor a group that merely sits under a
        matching container or base DN.
        """
        entries = self._search(build_group_filter(GROUP_OBJECT_CLASS, GROUP_MEMBER_ATTRIBUTE, dn))
        for entry in reversed(entries):
            name = _group_name(entry.dn)
            if name and name.lower() == group.strip().lower():
                return True
        return False


def _group_name(dn: str) -> str:
    try:
        rdns = parse_dn(dn, strip=True)
    except LDAPInvalidDnError:
        _LOGGER.debug("Skipping group with malformed DN %s", dn)
        return ""
    return rdns[0][1] if rdns else ""
