"""Shared fixtures: an in-memory directory client and a default configuration."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from directory_auth.config import LdapAuthConfig
from directory_auth.ldap import DirectoryClient, Entry

SEARCH_USER = "cn=reader,dc=example,dc=com"
SEARCH_PASSWORD = "reader-secret"
ALICE_DN = "uid=alice,ou=people,dc=example,dc=com"


class FakeHandle():
    def __init__(self, uri: str):
        self.uri = uri
        self.options: Dict[str, Any] = {}
        self.bound_dn: Optional[str] = None
        self.closed = False


class FakeDirectoryClient(DirectoryClient):
    """Records every call; binds and searches are answered from tables."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.handles: List[FakeHandle] = []
        self.passwords: Dict[str, str] = {SEARCH_USER: SEARCH_PASSWORD}
        self.results: Dict[str, Optional[List[Entry]]] = {}
        self.open_fails = False
        self.error_code = 0
        self.error_message = ""

    def open(self, uri):
        self.calls.append(("open", uri))
        if self.open_fails:
            self.error_code, self.error_message = -1, "Can't contact LDAP server"
            return None
        handle = FakeHandle(uri)
        self.handles.append(handle)
        return handle

    def configure(self, handle, option, value):
        self.calls.append(("configure", option, value))
        handle.options[option] = value

    def bind(self, handle, dn, password):
        self.calls.append(("bind", handle, dn))
        if self.passwords.get(dn) == password:
            handle.bound_dn = dn
            self.error_code, self.error_message = 0, ""
            return True
        handle.bound_dn = None
        self.error_code, self.error_message = 49, "invalidCredentials"
        return False

    def search(self, handle, base_dn, search_filter):
        self.calls.append(("search", handle, base_dn, search_filter))
        result = self.results.get(search_filter, [])
        if result is None:
            self.error_code, self.error_message = 1, "operationsError"
        return result

    def get_entries(self, handle, result):
        return list(result)

    def last_error_code(self, handle):
        return self.error_code

    def last_error_message(self, handle):
        return self.error_message

    def close(self, handle):
        self.calls.append(("close", handle))
        handle.closed = True

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    def searches(self) -> List[str]:
        return [call[3] for call in self.calls if call[0] == "search"]


@pytest.fixture
def client() -> FakeDirectoryClient:
    return FakeDirectoryClient()


@pytest.fixture
def config() -> LdapAuthConfig:
    return LdapAuthConfig.from_dict(
        {
            "uri": "ldap://ldap.example.com:389",
            "base_dn": "dc=example,dc=com",
            "search_user_name": SEARCH_USER,
            "search_user_password": SEARCH_PASSWORD,
        }
    )
