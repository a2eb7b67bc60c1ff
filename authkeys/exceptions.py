"""
Errors raised by authkeys.

Every failure is terminal for the invocation.  The exception class names the
stage that failed; the message and the chained ``__cause__`` carry the
underlying reason.
"""


class AuthkeysError(Exception):
    """Base class for every error authkeys raises."""


class ConfigurationError(AuthkeysError):
    """The configuration file is missing, unreadable, or invalid."""


class DirectoryConnectionError(AuthkeysError):
    """The directory host could not be reached within the dial timeout."""


class TLSError(AuthkeysError):
    """
    StartTLS negotiation failed, the server certificate did not verify, or the
    configured trust root could not be loaded.
    """


class BindError(AuthkeysError):
    """The directory rejected the service bind."""


class QueryError(AuthkeysError):
    """
    The directory rejected a search, returned no entries, returned more than
    one entry where exactly one is required, or the result could not be
    serialized.
    """


def ldap_error_message(exc: Exception) -> str:
    """
    Render a python-ldap exception as a one-line message.

    python-ldap exceptions carry a dict with ``desc`` and, sometimes, ``info``
    keys as their first argument.

    Args:
        exc: the exception to describe

    Returns:
        A human readable description.

    """
    if exc.args and isinstance(exc.args[0], dict):
        details = exc.args[0]
        desc = details.get("desc", type(exc).__name__)
        info = details.get("info")
        if info:
            return f"{desc}: {info}"
        return str(desc)
    return str(exc) or type(exc).__name__
