"""`task-board config` commands: read and write board settings."""

import structlog
from cyclopts import App

from task_board.config import DEFAULTS, KNOWN_KEYS, NUMERIC_KEYS, get_config

logger = structlog.get_logger()

config_app = App(name="config", help="Read and write task-board settings (service URL, project, user)")


def _scope(global_: bool) -> str:
    return "global" if global_ else "local"


@config_app.command
def set(key: str, value: str, global_: bool = False) -> None:
    """Store a board setting.

    Numeric settings are checked before anything is written. Keys the board
    does not read are stored anyway, with a warning.

    Args:
        key: Setting name, e.g. api.base_url or project.id
        value: New value
        global_: Write ~/.task-board instead of ./.task-board
    """
    stored: str | float = value
    if key in NUMERIC_KEYS:
        try:
            stored = float(value)
        except ValueError as e:
            raise ValueError(f"{key} must be a number, got {value!r}") from e
    if key not in KNOWN_KEYS:
        logger.warning("Unknown config key", key=key)
        print(f"Warning: {key} is not a task-board setting (see `task-board config keys`)")

    get_config(use_global=global_).set(key, stored)
    print(f"{key} = {stored} ({_scope(global_)})")


@config_app.command
def unset(key: str, global_: bool = False) -> None:
    """Remove a board setting and show the value that applies instead.

    Args:
        key: Setting name
        global_: Remove from ~/.task-board instead of ./.task-board
    """
    config = get_config(use_global=global_)
    if config.source(key) != _scope(global_):
        print(f"{key} is not set in the {_scope(global_)} config")
        return
    config.unset(key)

    fallback = get_config(use_global=global_)
    if fallback.source(key) is None:
        print(f"Removed {key} ({_scope(global_)})")
    else:
        print(f"Removed {key} ({_scope(global_)}); now {fallback.get(key)} from {fallback.source(key)}")


@config_app.command
def get(key: str, global_: bool = False) -> None:
    """Show the effective value of a setting and where it comes from.

    Args:
        key: Setting name
        global_: Look in ~/.task-board and the defaults only
    """
    config = get_config(use_global=global_)
    source = config.source(key)
    if source is None:
        print(f"{key} is not set")
    else:
        print(f"{key} = {config.get(key)} ({source})")


@config_app.command(name="list")
def list_config(global_: bool = False, defaults: bool = False) -> None:
    """List stored settings with the layer each one comes from.

    Args:
        global_: List ~/.task-board only
        defaults: Also show built-in defaults that nothing overrides
    """
    config = get_config(use_global=global_)
    names = list(config.list())
    if defaults:
        names += [key for key in DEFAULTS if key not in names]

    if not names:
        print(f"No {_scope(global_)} settings")
        return

    for key in names:
        print(f"{key} = {config.get(key)} ({config.source(key)})")


@config_app.command
def keys() -> None:
    """Describe the settings task-board reads, with their effective values."""
    config = get_config()
    for key, description in KNOWN_KEYS.items():
        value = config.get(key)
        shown = "<unset>" if value is None else value
        print(f"{key}: {description}\n    {shown} ({config.source(key) or 'unset'})")
