"""
Open an encrypted, optionally authenticated connection to the directory.
"""

import logging
import ssl
from pathlib import Path

from authkeys import ldap

from .config import AuthkeysConfig
from .exceptions import (
    BindError,
    DirectoryConnectionError,
    TLSError,
    ldap_error_message,
)

logger = logging.getLogger(__name__)


def check_root_ca_file(path: Path) -> None:
    """
    Make sure ``path`` is a readable file holding at least one PEM certificate.

    Args:
        path: the trust root file

    Raises:
        TLSError: the file is missing, is not a regular file, cannot be read,
            or contains no certificates we can parse.

    """
    if not path.exists():
        msg = f"RootCAFile does not exist: {path}"
        raise TLSError(msg)
    if not path.is_file():
        msg = f"RootCAFile is not a file: {path}"
        raise TLSError(msg)
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    try:
        context.load_verify_locations(cafile=str(path))
    except (OSError, ssl.SSLError) as exc:
        msg = f"Unable to load certificates from RootCAFile {path}: {exc}"
        raise TLSError(msg) from exc
    if not context.get_ca_certs():
        msg = f"No certificates found in RootCAFile {path}"
        raise TLSError(msg)


def _set_options(
    ldap_object: ldap.ldapobject.LDAPObject,  # type: ignore[name-defined]
    config: AuthkeysConfig,
) -> None:
    ldap_object.set_option(ldap.OPT_PROTOCOL_VERSION, ldap.VERSION3)  # type: ignore[attr-defined]
    ldap_object.set_option(ldap.OPT_REFERRALS, 0)  # type: ignore[attr-defined]
    ldap_object.set_option(ldap.OPT_NETWORK_TIMEOUT, float(config.dial_timeout))  # type: ignore[attr-defined]
    ldap_object.set_option(ldap.OPT_TIMEOUT, float(config.dial_timeout))  # type: ignore[attr-defined]
    ldap_object.set_option(ldap.OPT_DEREF, ldap.DEREF_NEVER)  # type: ignore[attr-defined]
    ldap_object.set_option(ldap.OPT_SIZELIMIT, 0)  # type: ignore[attr-defined]
    ldap_object.set_option(ldap.OPT_X_TLS_REQUIRE_CERT, ldap.OPT_X_TLS_DEMAND)  # type: ignore[attr-defined]
    if config.root_ca_file is not None:
        check_root_ca_file(config.root_ca_file)
        ldap_object.set_option(ldap.OPT_X_TLS_CACERTFILE, str(config.root_ca_file))  # type: ignore[attr-defined]
    # Must come last: the new TLS context picks up the options set above
    ldap_object.set_option(ldap.OPT_X_TLS_NEWCTX, 0)  # type: ignore[attr-defined]


def _start_tls(
    ldap_object: ldap.ldapobject.LDAPObject,  # type: ignore[name-defined]
    config: AuthkeysConfig,
) -> None:
    try:
        ldap_object.start_tls_s()
    except (ldap.SERVER_DOWN, ldap.TIMEOUT) as exc:  # type: ignore[attr-defined]
        msg = (
            f"Unable to connect to {config.ldap_server}:{config.ldap_port} "
            f"within {config.dial_timeout}s: {ldap_error_message(exc)}"
        )
        raise DirectoryConnectionError(msg) from exc
    except ldap.LDAPError as exc:  # type: ignore[attr-defined]
        msg = f"Unable to start TLS connection: {ldap_error_message(exc)}"
        raise TLSError(msg) from exc


def _bind(
    ldap_object: ldap.ldapobject.LDAPObject,  # type: ignore[name-defined]
    config: AuthkeysConfig,
) -> None:
    try:
        ldap_object.simple_bind_s(config.bind_dn, config.bind_pw)
    except ldap.LDAPError as exc:  # type: ignore[attr-defined]
        msg = f"Unable to bind as {config.bind_dn}: {ldap_error_message(exc)}"
        raise BindError(msg) from exc


def connect(config: AuthkeysConfig) -> ldap.ldapobject.LDAPObject:  # type: ignore[name-defined]
    """
    Connect to the directory, upgrade the connection with StartTLS, and bind.

    The server certificate is always verified, against ``config.root_ca_file``
    when one is configured and the system trust store otherwise.  We bind with
    ``config.bind_dn`` only when bind credentials are configured; otherwise
    the connection stays anonymous.

    Args:
        config: our configuration

    Raises:
        DirectoryConnectionError: the server could not be reached in time.
        TLSError: the trust root could not be loaded, or TLS negotiation or
            certificate verification failed.
        BindError: the directory rejected our bind.

    Returns:
        A connected, encrypted LDAPObject.  The caller must ``unbind_s()`` it.

    """
    try:
        ldap_object = ldap.initialize(config.uri)
    except ldap.LDAPError as exc:  # type: ignore[attr-defined]
        msg = (
            f"Unable to initialize connection to {config.uri}: "
            f"{ldap_error_message(exc)}"
        )
        raise DirectoryConnectionError(msg) from exc
    try:
        _set_options(ldap_object, config)
        _start_tls(ldap_object, config)
        logger.debug("connect.tls.ok uri=%s", config.uri)
        if config.has_bind_credentials:
            _bind(ldap_object, config)
            logger.debug("connect.bind.ok dn=%s", config.bind_dn)
        else:
            logger.debug("connect.bind.anonymous uri=%s", config.uri)
    except BaseException:
        release(ldap_object)
        raise
    return ldap_object


def release(ldap_object: ldap.ldapobject.LDAPObject) -> None:  # type: ignore[name-defined]
    """
    Unbind ``ldap_object``.  Errors from the unbind are logged, not raised.
    """
    try:
        ldap_object.unbind_s()
    except ldap.LDAPError as exc:  # type: ignore[attr-defined]
        logger.warning("disconnect.failed error=%s", ldap_error_message(exc))
