"""
The ``authkeys`` command.

Use it as an OpenSSH ``AuthorizedKeysCommand``::

    authkeys alice

or to list a group's members for account provisioning::

    authkeys --group admins

"""

import logging
from pathlib import Path

import click

from . import __version__
from .config import CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH, load_config
from .exceptions import AuthkeysError
from .lookup import run_lookup
from .query import SearchMode

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(verbose: bool = False) -> None:
    """
    Send log messages to standard error, so standard output carries only
    the lookup result.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        force=True,
    )


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, message="%(version)s")
@click.argument("username", required=False)
@click.option("--group", "-g", default=None, help="List members of this LDAP group.")
@click.option(
    "--min",
    "minimal",
    is_flag=True,
    default=False,
    help="Use minimal attributes (for LDAP servers that do not return memberOf).",
)
@click.option(
    "--config-path",
    envvar=CONFIG_ENV_VAR,
    type=click.Path(path_type=Path, dir_okay=False),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Configuration file.",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log debug output.")
def main(
    username: str | None,
    group: str | None,
    minimal: bool,
    config_path: Path,
    verbose: bool,
) -> None:
    """
    Print USERNAME's SSH public keys, or the members of a group, from LDAP.
    """
    if group and username:
        msg = "Give either a USERNAME or --group, not both."
        raise click.UsageError(msg)
    if not group and not username:
        msg = "Give a USERNAME or --group."
        raise click.UsageError(msg)
    if minimal and not group:
        msg = "--min only applies to --group lookups."
        raise click.UsageError(msg)

    configure_logging(verbose)
    if group:
        mode, name = SearchMode.GROUP_MEMBERS, group
    else:
        mode, name = SearchMode.SINGLE_USER, username
    try:
        config = load_config(config_path)
        run_lookup(config, mode, name, minimal=minimal)
    except AuthkeysError as exc:
        logger.debug("lookup.failed mode=%s name=%s error=%s", mode.value, name, exc)
        raise click.ClickException(str(exc)) from exc
