"""
Build the LDAP searches authkeys runs.

Everything here is pure: no connection is needed to build a search.
"""

import enum
from dataclasses import dataclass, field

from ldap_filter import Filter

from authkeys import ldap

from .config import AuthkeysConfig

#: objectClass of the person entries we list for group lookups
PERSON_OBJECTCLASS = "inetOrgPerson"
#: Reverse-membership attribute holding the DNs of a person's groups
MEMBERSHIP_ATTRIBUTE = "memberOf"
UID_NUMBER_ATTRIBUTE = "uidNumber"
GID_NUMBER_ATTRIBUTE = "gidNumber"
HOME_DIRECTORY_ATTRIBUTE = "homeDirectory"
LOGIN_SHELL_ATTRIBUTE = "loginShell"


class SearchMode(enum.Enum):
    """What an invocation looks up."""

    #: Return one user's public keys
    SINGLE_USER = "user"
    #: Return the members of a group, with their POSIX attributes
    GROUP_MEMBERS = "group"


@dataclass(frozen=True)
class SearchRequest:
    """
    A fully specified search.  Scope is always the whole subtree under
    ``basedn``; size and time limits are left to the server.
    """

    basedn: str
    filterstr: str
    attributes: list[str] = field(default_factory=list)
    scope: int = ldap.SCOPE_SUBTREE  # type: ignore[attr-defined]


def member_attributes(config: AuthkeysConfig, minimal: bool = False) -> list[str]:
    """
    Return the attributes we request for each group member.

    Args:
        config: our configuration

    Keyword Args:
        minimal: leave out ``memberOf``, for directories that don't return it
            on the group listing

    Returns:
        The attribute names, in request order.

    """
    attributes = [config.user_attribute, UID_NUMBER_ATTRIBUTE, GID_NUMBER_ATTRIBUTE]
    if not minimal:
        attributes.append(MEMBERSHIP_ATTRIBUTE)
    attributes.extend([HOME_DIRECTORY_ATTRIBUTE, LOGIN_SHELL_ATTRIBUTE])
    return attributes


def user_search(config: AuthkeysConfig, username: str) -> SearchRequest:
    """
    Build the search for ``username``'s public keys.  ``config.user_postfix``
    is appended to ``username`` before it goes into the filter.
    """
    flt = Filter.attribute(config.user_attribute).equal_to(
        f"{username}{config.user_postfix}"
    )
    return SearchRequest(
        basedn=config.base_dn,
        filterstr=flt.to_string(),
        attributes=[config.key_attribute],
    )


def group_search(
    config: AuthkeysConfig, group: str, minimal: bool = False
) -> SearchRequest:
    """
    Build the search for the members of the group with common name ``group``.
    """
    flt = Filter.AND(
        [
            Filter.attribute("objectClass").equal_to(PERSON_OBJECTCLASS),
            Filter.attribute(MEMBERSHIP_ATTRIBUTE).equal_to(config.group_dn(group)),
        ]
    )
    return SearchRequest(
        basedn=config.base_dn,
        filterstr=flt.to_string(),
        attributes=member_attributes(config, minimal=minimal),
    )


def build_search(
    mode: SearchMode, config: AuthkeysConfig, name: str, minimal: bool = False
) -> SearchRequest:
    """
    Build the primary search for an invocation.

    Args:
        mode: what we are looking up
        config: our configuration
        name: the username for :attr:`SearchMode.SINGLE_USER`, or the group's
            common name for :attr:`SearchMode.GROUP_MEMBERS`

    Keyword Args:
        minimal: for group lookups, request the reduced attribute set.
            Ignored for user lookups.

    Returns:
        The search to run.

    """
    if mode is SearchMode.SINGLE_USER:
        return user_search(config, name)
    return group_search(config, name, minimal=minimal)


def build_membership_search(config: AuthkeysConfig, identity: str) -> SearchRequest:
    """
    Build the follow-up search that fetches one member's ``memberOf`` values.

    Args:
        config: our configuration
        identity: the member's ``config.user_attribute`` value, as returned by
            the group listing

    Returns:
        The search to run.

    """
    flt = Filter.attribute(config.user_attribute).equal_to(identity)
    return SearchRequest(
        basedn=config.base_dn,
        filterstr=flt.to_string(),
        attributes=[MEMBERSHIP_ATTRIBUTE],
    )
