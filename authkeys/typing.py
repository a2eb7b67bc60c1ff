"""
Type aliases for raw python-ldap search results.
"""

RawAttributes = dict[str, list[bytes]]
LDAPData = tuple[str, RawAttributes]
