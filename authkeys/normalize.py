"""
Turn raw search results into the keys or member records we emit.

Directories populate member entries inconsistently: some store email
addresses as the user identifier, some don't return ``memberOf`` on a group
listing at all.  The functions here smooth that over into a stable schema.
"""

import logging
import re

from .config import AuthkeysConfig
from .exceptions import QueryError
from .managers import DirectoryManager
from .models import DirectoryEntry, NormalizedUser
from .query import (
    GID_NUMBER_ATTRIBUTE,
    HOME_DIRECTORY_ATTRIBUTE,
    LOGIN_SHELL_ATTRIBUTE,
    MEMBERSHIP_ATTRIBUTE,
    UID_NUMBER_ATTRIBUTE,
    SearchMode,
    build_membership_search,
    build_search,
)

logger = logging.getLogger(__name__)

CN_MARKER = re.compile("cn=", re.IGNORECASE)


def extract_group_name(dn: str) -> str | None:
    """
    Return the common name from a group DN.

    This is the text between the first ``cn=`` (matched case-insensitively)
    and the first comma after it, or the rest of the string when no comma
    follows::

        >>> extract_group_name("cn=admins,ou=groups,dc=example,dc=com")
        'admins'

    Args:
        dn: a ``memberOf`` value

    Returns:
        The group name, or ``None`` if ``dn`` has no ``cn=``.

    """
    marker = CN_MARKER.search(dn)
    if marker is None:
        return None
    start = marker.end()
    end = dn.find(",", start)
    if end == -1:
        return dn[start:]
    return dn[start:end]


def normalize_identity(value: str) -> str:
    """
    Strip an email-style domain from a user identifier: ``bob@example.com``
    becomes ``bob``.  Identifiers without an ``@`` are returned unchanged.
    """
    return value.split("@", 1)[0]


def check_cardinality(entries: list[DirectoryEntry], mode: SearchMode) -> None:
    """
    Make sure a primary search returned a usable number of entries.

    We refuse to guess which of several matching entries holds a user's keys,
    so a user lookup must find exactly one.  A group lookup may find many.

    Raises:
        QueryError: no entries, or more than one for a user lookup.

    """
    if not entries:
        msg = "No entries returned from LDAP"
        raise QueryError(msg)
    if mode is SearchMode.SINGLE_USER and len(entries) > 1:
        msg = f"Too many entries returned from LDAP: expected 1, got {len(entries)}"
        raise QueryError(msg)


def resolve_keys(
    manager: DirectoryManager, config: AuthkeysConfig, username: str
) -> list[str]:
    """
    Look up the public keys of ``username``.

    Args:
        manager: a connected manager
        config: our configuration
        username: the login name, without ``config.user_postfix``

    Raises:
        QueryError: the search failed or did not find exactly one entry.

    Returns:
        The values of ``config.key_attribute``, unmodified and in directory
        order.  Empty if the user has no keys.

    """
    entries = manager.search(build_search(SearchMode.SINGLE_USER, config, username))
    check_cardinality(entries, SearchMode.SINGLE_USER)
    keys = entries[0].values(config.key_attribute)
    logger.info("keys.found user=%s dn=%s count=%d", username, entries[0].dn, len(keys))
    return keys


def fetch_membership(
    manager: DirectoryManager, config: AuthkeysConfig, entry: DirectoryEntry
) -> list[str]:
    """
    Fetch ``entry``'s ``memberOf`` values with a search of their own.

    Used for directories that leave ``memberOf`` off the group listing.

    Args:
        manager: the manager whose connection the group listing used
        config: our configuration
        entry: a member entry from the group listing

    Raises:
        QueryError: ``entry`` has no identity to search by, the search failed,
            or it matched more than one entry.

    Returns:
        The ``memberOf`` values of the matching entry, or ``[]`` if the
        search matched nothing.

    """
    identity = entry.value(config.user_attribute)
    if not identity:
        msg = f"Entry {entry.dn} has no {config.user_attribute} to look up groups by"
        raise QueryError(msg)
    entries = manager.search(build_membership_search(config, identity))
    if len(entries) > 1:
        msg = (
            f"Too many entries returned from LDAP for {config.user_attribute}="
            f"{identity}: expected 1, got {len(entries)}"
        )
        raise QueryError(msg)
    if not entries:
        logger.warning("membership.not_found dn=%s identity=%s", entry.dn, identity)
        return []
    return entries[0].values(MEMBERSHIP_ATTRIBUTE)


def group_names(dns: list[str]) -> list[str]:
    """
    Return the common names of the groups in ``dns``, in order, skipping any
    value that doesn't look like a group DN.
    """
    names: list[str] = []
    for dn in dns:
        name = extract_group_name(dn)
        if name is None:
            logger.warning("membership.unparseable value=%s", dn)
            continue
        names.append(name)
    return names


def normalize_member(
    manager: DirectoryManager,
    config: AuthkeysConfig,
    entry: DirectoryEntry,
    group: str,
    minimal: bool = False,
) -> NormalizedUser:
    """
    Build the output record for one entry of a group listing.

    Args:
        manager: the manager the listing came from
        config: our configuration
        entry: the member entry
        group: the common name of the group we listed

    Keyword Args:
        minimal: the listing was made without ``memberOf``; fetch each
            member's groups with a search of its own

    Raises:
        QueryError: a follow-up membership search failed.

    Returns:
        The normalized member.  Its groups always include at least ``group``
        when the directory reports none.

    """
    if minimal:
        membership = fetch_membership(manager, config, entry)
    else:
        membership = entry.values(MEMBERSHIP_ATTRIBUTE)
    groups = group_names(membership)
    if not groups:
        groups = [group]
    return NormalizedUser(
        identity=normalize_identity(entry.value(config.user_attribute)),
        uid_number=entry.value(UID_NUMBER_ATTRIBUTE),
        gid_number=entry.value(GID_NUMBER_ATTRIBUTE),
        groups=groups,
        home_directory=entry.value(HOME_DIRECTORY_ATTRIBUTE),
        shell=entry.value(LOGIN_SHELL_ATTRIBUTE),
    )


def resolve_members(
    manager: DirectoryManager,
    config: AuthkeysConfig,
    group: str,
    minimal: bool = False,
) -> list[NormalizedUser]:
    """
    List the members of the group with common name ``group``.

    Args:
        manager: a connected manager
        config: our configuration
        group: the group's common name

    Keyword Args:
        minimal: the directory doesn't return ``memberOf`` on group listings

    Raises:
        QueryError: any search failed, or the group has no members.  One
            member failing fails the whole lookup.

    Returns:
        One record per member, in directory order.

    """
    entries = manager.search(
        build_search(SearchMode.GROUP_MEMBERS, config, group, minimal=minimal)
    )
    check_cardinality(entries, SearchMode.GROUP_MEMBERS)
    users = [
        normalize_member(manager, config, entry, group, minimal=minimal)
        for entry in entries
    ]
    logger.info("members.found group=%s count=%d minimal=%s", group, len(users), minimal)
    return users
