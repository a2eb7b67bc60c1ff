# Connection code imports ``ldap`` from here rather than from python-ldap
# directly, so that python-ldap-faker can patch ``authkeys.ldap.initialize``
# in our tests without touching the real module.
import ldap
from ldap import *  # noqa: F403
from ldap import ldapobject  # noqa: F401

__version__ = ldap.__version__
