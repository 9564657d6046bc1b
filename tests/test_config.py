"""Tests for configuration loading and validation."""

import pytest

from directory_auth.config import LdapAuthConfig, load_config
from directory_auth.ldap import InvalidConfiguration

MINIMAL = {"uri": "ldap://ldap.example.com:389", "base_dn": "dc=example,dc=com"}


def test_defaults():
    cfg = LdapAuthConfig.from_dict(MINIMAL)

    assert cfg.follow_referrals is False
    assert cfg.search_user_name == ""
    assert cfg.search_user_password == ""
    assert cfg.object_class == "person"
    assert cfg.login_attribute == "uid"
    assert cfg.protocol_version == 3
    assert cfg.operation_timeout == 10
    assert cfg.connect_timeout == 10
    assert cfg.verify_ssl is True
    assert cfg.use_starttls is False
    assert cfg.group is None
    assert cfg.display_attribute == "displayName"


def test_values_are_coerced():
    cfg = LdapAuthConfig.from_dict(
        dict(
            MINIMAL,
            follow_referrals="yes",
            protocol_version="3",
            operation_timeout="30",
            connect_timeout=5,
            search_user_password=12345,
            group="  admins ",
            verify_ssl="false",
            use_starttls="on",
            unknown_key="ignored",
        )
    )

    assert cfg.follow_referrals is True
    assert cfg.protocol_version == 3
    assert cfg.operation_timeout == 30
    assert cfg.connect_timeout == 5
    assert cfg.search_user_password == "12345"
    assert cfg.group == "admins"
    assert cfg.verify_ssl is False
    assert cfg.use_starttls is True


def test_config_is_immutable():
    cfg = LdapAuthConfig.from_dict(MINIMAL)

    with pytest.raises(AttributeError):
        cfg.uri = "ldap://elsewhere"


@pytest.mark.parametrize(
    "override",
    [
        {"uri": "http://ldap.example.com"},
        {"base_dn": ""},
        {"protocol_version": 4},
        {"connect_timeout": 0},
        {"operation_timeout": "soon"},
        {"login_attribute": ""},
    ],
)
def test_invalid_values(override):
    with pytest.raises(InvalidConfiguration):
        LdapAuthConfig.from_dict(dict(MINIMAL, **override))


@pytest.mark.parametrize("missing", ["uri", "base_dn"])
def test_required_keys(missing):
    data = dict(MINIMAL)
    del data[missing]

    with pytest.raises(InvalidConfiguration):
        LdapAuthConfig.from_dict(data)


def test_load_config_from_yaml(tmp_path):
    path = tmp_path / "configuration.yaml"
    path.write_text(
        "homeassistant:\n"
        "  name: Home\n"
        "ldap_auth:\n"
        "  uri: ldaps://ldap.example.com:636\n"
        "  base_dn: dc=example,dc=com\n"
        "  search_user_name: cn=reader,dc=example,dc=com\n"
        "  search_user_password: secret\n"
        "  group: admins\n",
        encoding="utf-8",
    )

    cfg = load_config(str(path))

    assert cfg.uri == "ldaps://ldap.example.com:636"
    assert cfg.search_user_name == "cn=reader,dc=example,dc=com"
    assert cfg.group == "admins"


def test_load_config_from_env(tmp_path, monkeypatch):
    path = tmp_path / "ldap.yaml"
    path.write_text("ldap_auth:\n  uri: ldap://ldap:389\n  base_dn: dc=example,dc=com\n", encoding="utf-8")
    monkeypatch.setenv("LDAP_AUTH_CONFIG", str(path))

    assert load_config().uri == "ldap://ldap:389"


def test_load_config_from_config_dir(tmp_path, monkeypatch):
    (tmp_path / "configuration.yaml").write_text(
        "ldap_auth:\n  uri: ldap://ldap:389\n  base_dn: dc=example,dc=com\n", encoding="utf-8"
    )
    monkeypatch.delenv("LDAP_AUTH_CONFIG", raising=False)
    monkeypatch.setenv("HASS_CONFIG", str(tmp_path))

    assert load_config().base_dn == "dc=example,dc=com"


def test_missing_file(tmp_path):
    with pytest.raises(InvalidConfiguration, match="not found"):
        load_config(str(tmp_path / "absent.yaml"))


@pytest.mark.parametrize("content", ["other: {}\n", "ldap_auth: just a string\n", "- a list\n", ""])
def test_missing_section(tmp_path, content):
    path = tmp_path / "configuration.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(InvalidConfiguration, match="ldap_auth"):
        load_config(str(path))


def test_invalid_yaml(tmp_path):
    path = tmp_path / "configuration.yaml"
    path.write_text("ldap_auth: [unclosed\n", encoding="utf-8")

    with pytest.raises(InvalidConfiguration, match="Failed to read/parse YAML"):
        load_config(str(path))
