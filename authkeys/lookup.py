"""
Run a complete lookup: connect, search, normalize, emit.
"""

from collections.abc import Sequence
from typing import TextIO

from .config import AuthkeysConfig
from .emit import emit
from .managers import DirectoryManager
from .models import NormalizedUser
from .normalize import resolve_keys, resolve_members
from .query import SearchMode


def lookup(
    config: AuthkeysConfig, mode: SearchMode, name: str, minimal: bool = False
) -> Sequence[str] | Sequence[NormalizedUser]:
    """
    Look ``name`` up in the directory and return the normalized result.

    One connection is opened for the lookup and released before we return,
    whether or not the lookup succeeded.

    Args:
        config: our configuration
        mode: what to look up
        name: a username, or a group's common name

    Keyword Args:
        minimal: for group lookups, fetch each member's groups separately

    Raises:
        AuthkeysError: a subclass naming the stage that failed.

    Returns:
        A list of public keys, or a list of member records.

    """
    with DirectoryManager(config) as manager:
        if mode is SearchMode.SINGLE_USER:
            return resolve_keys(manager, config, name)
        return resolve_members(manager, config, name, minimal=minimal)


def run_lookup(
    config: AuthkeysConfig,
    mode: SearchMode,
    name: str,
    minimal: bool = False,
    stream: TextIO | None = None,
) -> None:
    """
    :func:`lookup` ``name`` and write the result to ``stream`` (standard
    output by default).
    """
    emit(mode, lookup(config, mode, name, minimal=minimal), stream)
