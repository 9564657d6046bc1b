"""
LDAP connectivity for directory_auth.
Directory client capability, its ldap3 implementation and the error taxonomy.
"""

from __future__ import annotations

import logging
import ssl
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ldap3 import ALL_ATTRIBUTES, ANONYMOUS, SIMPLE, SUBTREE, SYNC, Connection, Server, Tls
from ldap3.core.exceptions import LDAPCommunicationError, LDAPException
from ldap3.utils.conv import escape_filter_chars

from .const import (
    OPT_NETWORK_TIMEOUT,
    OPT_PROTOCOL_VERSION,
    OPT_REFERRALS,
    OPT_STARTTLS,
    OPT_TIMELIMIT,
    OPT_VERIFY_SSL,
)

_LOGGER = logging.getLogger(__name__)

RESULT_SUCCESS = 0
RESULT_NO_SUCH_OBJECT = 32
UNKNOWN_ERROR_CODE = -1


class InvalidConfiguration(Exception):
    pass


class InvalidOperation(Exception):
    pass


class LdapAuthError(Exception):
    """Directory failure carrying the library's error code and message."""

    summary = "LDAP error"

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(f"{self.summary}. Code {code}. Message: {message}")


class LdapConnectionError(LdapAuthError):
    summary = "Unable to connect to LDAP"


class LdapBindError(LdapAuthError):
    summary = "Unable to bind LDAP search user"


class LdapSearchError(LdapAuthError):
    summary = "LDAP search failed"


@dataclass(frozen=True)
class Entry:
    """A directory entry: its distinguished name and attribute values."""

    dn: str
    attributes: Dict[str, List[str]] = field(default_factory=dict)

    def values(self, name: str) -> List[str]:
        # attribute names are case-insensitive in LDAP
        lowered = name.lower()
        for key, values in self.attributes.items():
            if key.lower() == lowered:
                return list(values)
        return []

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        values = self.values(name)
        return values[0] if values else default


def build_user_filter(object_class: str, login_attribute: str, uid: str) -> str:
    return f"(&(objectClass={object_class})({login_attribute}={escape_filter_chars(uid)}))"


def build_group_filter(object_class: str, member_attribute: str, member_dn: str) -> str:
    return f"(&(objectClass={object_class})({member_attribute}={escape_filter_chars(member_dn)}))"


class DirectoryClient(ABC):
    """Minimal set of directory operations the authenticator relies on.

    Handles returned by open() are opaque to callers. A falsy handle means
    the connection could not be established; last_error_code() and
    last_error_message() then describe why.
    """

    @abstractmethod
    def open(self, uri: str) -> Any:
        ...

    @abstractmethod
    def configure(self, handle: Any, option: str, value: Any) -> None:
        ...

    @abstractmethod
    def bind(self, handle: Any, dn: str, password: str) -> bool:
        ...

    @abstractmethod
    def search(self, handle: Any, base_dn: str, search_filter: str) -> Any:
        ...

    @abstractmethod
    def get_entries(self, handle: Any, result: Any) -> List[Entry]:
        ...

    @abstractmethod
    def last_error_code(self, handle: Any) -> int:
        ...

    @abstractmethod
    def last_error_message(self, handle: Any) -> str:
        ...

    @abstractmethod
    def close(self, handle: Any) -> None:
        ...


class Ldap3Handle():
    """Server, options and (once bound) ldap3 connection behind one handle."""

    def __init__(self, server: Server):
        self.server = server
        self.connection: Optional[Connection] = None
        self.version = 3
        self.auto_referrals = False
        self.receive_timeout: Optional[int] = None
        self.time_limit = 0
        self.use_starttls = False
        self.error_code = RESULT_SUCCESS
        self.error_message = ""

    def record(self, result: Optional[Dict[str, Any]]) -> None:
        result = result or {}
        self.error_code = int(result.get("result", UNKNOWN_ERROR_CODE))
        self.error_message = str(result.get("message") or result.get("description") or "")

    def record_exception(self, exc: Exception) -> None:
        self.error_code = UNKNOWN_ERROR_CODE
        self.error_message = str(exc)


class Ldap3Client(DirectoryClient):
    """DirectoryClient backed by the ldap3 library."""

    def __init__(self, client_strategy=SYNC):
        self._client_strategy = client_strategy
        self._open_error_code = RESULT_SUCCESS
        self._open_error_message = ""

    def open(self, uri: str) -> Optional[Ldap3Handle]:
        try:
            server = Server(uri, tls=_tls(verify=True))
        except LDAPException as exc:
            _LOGGER.debug("Invalid LDAP server URI %s: %s", uri, exc)
            self._open_error_code = UNKNOWN_ERROR_CODE
            self._open_error_message = str(exc)
            return None
        self._open_error_code = RESULT_SUCCESS
        self._open_error_message = ""
        return Ldap3Handle(server)

    def configure(self, handle: Ldap3Handle, option: str, value: Any) -> None:
        if handle is None:
            return
        if option == OPT_PROTOCOL_VERSION:
            handle.version = int(value)
        elif option == OPT_REFERRALS:
            handle.auto_referrals = bool(value)
        elif option == OPT_NETWORK_TIMEOUT:
            handle.server.connect_timeout = value
            handle.receive_timeout = value
        elif option == OPT_TIMELIMIT:
            handle.time_limit = int(value)
        elif option == OPT_VERIFY_SSL:
            handle.server.tls = _tls(verify=bool(value))
        elif option == OPT_STARTTLS:
            handle.use_starttls = bool(value)
        else:
            raise InvalidOperation(f"Unknown connection option: {option}")

    def bind(self, handle: Ldap3Handle, dn: str, password: str) -> bool:
        self.close(handle)
        handle.connection = Connection(
            handle.server,
            user=dn or None,
            password=password or None,
            authentication=SIMPLE if dn else ANONYMOUS,
            version=handle.version,
            auto_referrals=handle.auto_referrals,
            receive_timeout=handle.receive_timeout,
            client_strategy=self._client_strategy,
            raise_exceptions=False,
        )
        if handle.use_starttls:
            self._start_tls(handle)
        try:
            bound = bool(handle.connection.bind())
        except LDAPCommunicationError as exc:
            handle.record_exception(exc)
            raise LdapConnectionError(handle.error_code, handle.error_message) from exc
        except LDAPException as exc:
            handle.record_exception(exc)
            return False
        handle.record(handle.connection.result)
        return bound

    def _start_tls(self, handle: Ldap3Handle) -> None:
        # a connection that cannot be secured is not usable for binds
        try:
            started = handle.connection.start_tls()
        except LDAPException as exc:
            handle.record_exception(exc)
            raise LdapConnectionError(handle.error_code, handle.error_message) from exc
        if not started:
            handle.record(handle.connection.result)
            raise LdapConnectionError(handle.error_code, handle.error_message or "StartTLS failed")

    def search(self, handle: Ldap3Handle, base_dn: str, search_filter: str) -> Optional[list]:
        if handle is None or handle.connection is None:
            raise InvalidOperation("Search requires a bound connection")
        try:
            handle.connection.search(
                search_base=base_dn,
                search_filter=search_filter,
                search_scope=SUBTREE,
                attributes=ALL_ATTRIBUTES,
                time_limit=handle.time_limit,
            )
        except LDAPCommunicationError as exc:
            handle.record_exception(exc)
            raise LdapConnectionError(handle.error_code, handle.error_message) from exc
        except LDAPException as exc:
            handle.record_exception(exc)
            return None
        handle.record(handle.connection.result)
        if handle.error_code not in (RESULT_SUCCESS, RESULT_NO_SUCH_OBJECT):
            return None
        return list(handle.connection.response or [])

    def get_entries(self, handle: Ldap3Handle, result: list) -> List[Entry]:
        entries = []
        for item in result or []:
            if item.get("type") != "searchResEntry":
                continue
            attributes = {
                name: _as_strings(value) for name, value in (item.get("attributes") or {}).items()
            }
            entries.append(Entry(dn=item.get("dn", ""), attributes=attributes))
        return entries

    def last_error_code(self, handle: Optional[Ldap3Handle]) -> int:
        if handle is None:
            return self._open_error_code
        return handle.error_code

    def last_error_message(self, handle: Optional[Ldap3Handle]) -> str:
        if handle is None:
            return self._open_error_message
        return handle.error_message

    def close(self, handle: Optional[Ldap3Handle]) -> None:
        if handle is None or handle.connection is None:
            return
        connection, handle.connection = handle.connection, None
        try:
            connection.unbind()
        except LDAPException as exc:
            _LOGGER.debug("Ignoring error while closing LDAP connection: %s", exc)


def _tls(verify: bool) -> Tls:
    return Tls(validate=ssl.CERT_REQUIRED if verify else ssl.CERT_NONE)


def _as_strings(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        value = [value]
    return [v.decode("utf-8", errors="replace") if isinstance(v, bytes) else str(v) for v in value]
