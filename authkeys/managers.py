"""
Own the directory connection for one invocation and run searches over it.
"""

import logging
from types import TracebackType

from authkeys import ldap

from .config import AuthkeysConfig
from .connection import connect, release
from .exceptions import QueryError, ldap_error_message
from .models import DirectoryEntry
from .query import SearchRequest

logger = logging.getLogger(__name__)


class DirectoryManager:
    """
    Holds the single LDAP connection an invocation uses.

    Every search, including the per-member follow-up searches of a minimal
    group lookup, goes over the same connection.  Use the manager as a
    context manager so the connection is released however the invocation
    ends::

        with DirectoryManager(config) as manager:
            entries = manager.search(request)

    """

    def __init__(self, config: AuthkeysConfig) -> None:
        self.logger = logger
        self.config = config
        self._ldap_object: ldap.ldapobject.LDAPObject | None = None  # type: ignore[name-defined]

    def __enter__(self) -> "DirectoryManager":
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.disconnect()

    def connect(self) -> None:
        """
        Open our connection.  Does nothing if we already have one.

        Raises:
            DirectoryConnectionError: the server could not be reached.
            TLSError: TLS could not be established.
            BindError: the service bind was rejected.

        """
        if self.has_connection():
            return
        self._ldap_object = connect(self.config)
        self.logger.info("connect.success uri=%s", self.config.uri)

    def disconnect(self) -> None:
        """
        Unbind and forget our connection.

        Errors from the unbind are logged, not raised.
        """
        if self._ldap_object is None:
            return
        ldap_object, self._ldap_object = self._ldap_object, None
        release(ldap_object)

    def has_connection(self) -> bool:
        return self._ldap_object is not None

    @property
    def connection(self) -> ldap.ldapobject.LDAPObject:  # type: ignore[name-defined]
        """
        Our LDAPObject.

        Raises:
            QueryError: we are not connected.

        """
        if self._ldap_object is None:
            msg = "Not connected to the directory"
            raise QueryError(msg)
        return self._ldap_object

    def search(self, request: SearchRequest) -> list[DirectoryEntry]:
        """
        Run ``request`` over our connection.

        Args:
            request: the search to run

        Raises:
            QueryError: the directory rejected the search, or returned a value
                that is not valid UTF-8.

        Returns:
            The entries found, in the order the directory returned them.

        """
        try:
            data = self.connection.search_s(
                request.basedn,
                request.scope,
                filterstr=request.filterstr,
                attrlist=request.attributes,
            )
        except ldap.LDAPError as exc:  # type: ignore[attr-defined]
            msg = f"Search {request.filterstr} failed: {ldap_error_message(exc)}"
            raise QueryError(msg) from exc
        entries: list[DirectoryEntry] = []
        for obj in data:
            # Active Directory mixes search references in with the entries
            if not isinstance(obj[1], dict):
                continue
            try:
                entries.append(DirectoryEntry.from_ldap(obj))
            except UnicodeDecodeError as exc:
                msg = f"Undecodable value in {obj[0]}: {exc}"
                raise QueryError(msg) from exc
        self.logger.debug(
            "search.done basedn=%s filter=%s entries=%d",
            request.basedn,
            request.filterstr,
            len(entries),
        )
        return entries
