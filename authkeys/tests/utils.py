"""
Shared fixtures for the authkeys tests.
"""

from authkeys.config import AuthkeysConfig

BASE_DN = "dc=example,dc=com"
ADMINS_DN = "cn=admins,ou=groups,dc=example,dc=com"
ALICE_KEY = "ssh-rsa AAAAB3NzaC1yc2EAAAADAQABAAABAQC7 alice@host"


def make_config(**kwargs) -> AuthkeysConfig:
    """
    Return a configuration for ``ldap.example.com``, overridden by ``kwargs``.
    """
    values = {
        "ldap_server": "ldap.example.com",
        "ldap_port": 389,
        "base_dn": BASE_DN,
        "group_object": "groups",
        "key_attribute": "sshPublicKey",
        "user_attribute": "uid",
    }
    values.update(kwargs)
    return AuthkeysConfig(**values)


def person(uid: str, number: str, member_of: list[str] | None = None, **extra) -> tuple:
    """
    Return a raw python-ldap ``(dn, attrs)`` result for a posix person.
    """
    attrs = {
        "uid": [uid.encode()],
        "uidNumber": [number.encode()],
        "gidNumber": [number.encode()],
        "homeDirectory": [f"/home/{uid.split('@')[0]}".encode()],
        "loginShell": [b"/bin/bash"],
    }
    if member_of is not None:
        attrs["memberOf"] = [dn.encode() for dn in member_of]
    for name, values in extra.items():
        attrs[name] = [v.encode() for v in values]
    return (f"uid={uid},ou=people,{BASE_DN}", attrs)
