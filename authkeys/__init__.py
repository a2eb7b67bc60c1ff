"""
Look up SSH public keys and group rosters in an LDAP directory.
"""

__version__ = "1.0.0"
