#!/usr/bin/env python3
"""LDAP authentication helper for command line auth providers.

The host application executes this script in a separate process and passes
username / password via environment variables.

Exit codes:
  0  success
  1  invalid credentials / user not found / not a member of the required group
  2  configuration error
  5  LDAP error

On success a single metadata line is printed to stdout:
  name = <display name>
"""

from __future__ import annotations

import os
import sys

from .authenticator import DirectoryAuthenticator
from .const import EXIT_CONFIG_ERROR, EXIT_INVALID_CREDENTIALS, EXIT_LDAP_ERROR, EXIT_OK
from .config import load_config
from .ldap import InvalidConfiguration, LdapAuthError


def eprint(*args, **kwargs):
    print("[ldap_auth]", *args, file=sys.stderr, **kwargs)


def _get_env_cred() -> tuple[str, str]:
    username = os.environ.get("username") or os.environ.get("USERNAME") or ""
    password = os.environ.get("password") or os.environ.get("PASSWORD") or ""
    return username, password


def main() -> int:
    username, password = _get_env_cred()
    if not username or not password:
        eprint("Missing username/password env vars")
        return EXIT_CONFIG_ERROR

    try:
        cfg = load_config()
    except InvalidConfiguration as exc:
        eprint(f"Config error: {exc}")
        return EXIT_CONFIG_ERROR

    try:
        with DirectoryAuthenticator(cfg) as authenticator:
            entry = authenticator.search_uid(username)
            if entry is None:
                eprint(f"Search for username {username} yielded empty result")
                return EXIT_INVALID_CREDENTIALS

            if not authenticator.authenticate(entry.dn, password, cfg.group):
                eprint("Invalid credentials.")
                return EXIT_INVALID_CREDENTIALS
    except LdapAuthError as exc:
        # never include credentials, only the directory's error
        eprint(f"LDAP error: {exc}")
        return EXIT_LDAP_ERROR

    print(f"name = {entry.get(cfg.display_attribute, username)}")
    eprint(f"{username} authenticated successfully")
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
