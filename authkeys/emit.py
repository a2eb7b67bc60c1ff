"""
Write lookup results to an output stream.
"""

import json
import sys
from collections.abc import Sequence
from typing import TextIO

from pydantic_core import PydanticSerializationError

from .exceptions import QueryError
from .models import NormalizedUser
from .query import SearchMode


def emit_keys(keys: Sequence[str], stream: TextIO | None = None) -> None:
    """
    Write each key on a line of its own, as ``authorized_keys`` expects.
    """
    stream = stream if stream is not None else sys.stdout
    stream.write("".join(f"{key}\n" for key in keys))


def emit_users(users: Sequence[NormalizedUser], stream: TextIO | None = None) -> None:
    """
    Write ``users`` as a single JSON array, followed by a newline.

    Raises:
        QueryError: the records could not be serialized.

    """
    stream = stream if stream is not None else sys.stdout
    try:
        document = json.dumps(
            [user.model_dump(by_alias=True) for user in users],
            separators=(",", ":"),
            ensure_ascii=False,
        )
    except (PydanticSerializationError, TypeError, ValueError) as exc:
        msg = f"Unable to serialize group members: {exc}"
        raise QueryError(msg) from exc
    stream.write(document + "\n")


def emit(
    mode: SearchMode,
    result: Sequence[str] | Sequence[NormalizedUser],
    stream: TextIO | None = None,
) -> None:
    """
    Write ``result`` in the form that suits ``mode``.

    Args:
        mode: the lookup that produced ``result``
        result: keys for :attr:`SearchMode.SINGLE_USER`, member records for
            :attr:`SearchMode.GROUP_MEMBERS`

    Keyword Args:
        stream: where to write.  Defaults to standard output.

    """
    if mode is SearchMode.SINGLE_USER:
        emit_keys(result, stream)  # type: ignore[arg-type]
    else:
        emit_users(result, stream)  # type: ignore[arg-type]
