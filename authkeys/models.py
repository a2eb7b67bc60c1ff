"""
Directory entries as returned by a search, and the normalized member records
we emit for group lookups.
"""

from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field

from .typing import LDAPData


class DirectoryEntry:
    """
    One entry from a search result: a DN plus its attributes.

    LDAP attribute names are case-insensitive, so lookups here are too.
    Values are decoded to ``str``.
    """

    def __init__(self, dn: str, attributes: Mapping[str, list[str]]) -> None:
        self.dn = dn
        self._attributes: dict[str, list[str]] = {
            name.lower(): list(values) for name, values in attributes.items()
        }

    @classmethod
    def from_ldap(cls, data: LDAPData) -> "DirectoryEntry":
        """
        Build an entry from a raw python-ldap ``(dn, attrs)`` result tuple.

        Args:
            data: the result tuple

        Returns:
            The decoded entry.

        """
        dn, attrs = data
        return cls(
            dn,
            {
                name: [
                    v.decode("utf-8") if isinstance(v, bytes) else str(v)
                    for v in values
                ]
                for name, values in attrs.items()
            },
        )

    def values(self, name: str) -> list[str]:
        """Return every value of attribute ``name``, or ``[]`` if it is absent."""
        return list(self._attributes.get(name.lower(), []))

    def value(self, name: str) -> str:
        """Return the first value of attribute ``name``, or ``""`` if it is absent."""
        values = self._attributes.get(name.lower())
        if not values:
            return ""
        return values[0]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._attributes

    def __repr__(self) -> str:
        return f"<DirectoryEntry: {self.dn}>"


class NormalizedUser(BaseModel):
    """
    A group member, with the POSIX attributes needed to provision an account.

    Serialized field names (``id``, ``uid``, ``gid``, ``groups``, ``home``,
    ``shell``) are the ones consumers of our JSON output expect.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    identity: str = Field(serialization_alias="id")
    uid_number: str = Field(serialization_alias="uid")
    gid_number: str = Field(serialization_alias="gid")
    groups: list[str]
    home_directory: str = Field(serialization_alias="home")
    shell: str
