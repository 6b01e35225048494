"""Path helpers for locating git-effects configuration files."""

from pathlib import Path

from platformdirs import user_config_dir

GIT_EFFECTS_APP_NAME = "git-effects"
USER_CONFIG_FILENAME = "config.user.json"


def config_dir() -> Path:
    """Return the base git-effects configuration directory.

    Returns:
        Path to the user config directory for git-effects.

    Example:
        >>> isinstance(config_dir(), Path)
        True
    """
    return Path(user_config_dir(GIT_EFFECTS_APP_NAME))


def user_config_path() -> Path:
    """Return the path to the user configuration file.

    Example:
        >>> user_config_path().name == USER_CONFIG_FILENAME
        True
    """
    return config_dir() / USER_CONFIG_FILENAME


def ensure_dir(path: Path) -> None:
    """Create a directory (and parents) if it does not exist."""
    path.mkdir(parents=True, exist_ok=True)


def is_path_inside(child: Path | str, parent: Path | str) -> bool:
    """Return whether ``child`` equals or lives under ``parent``.

    Example:
        >>> is_path_inside("/repo/src/app.py", "/repo")
        True
        >>> is_path_inside("/repo-other", "/repo")
        False
    """
    child_path = Path(child).expanduser().resolve()
    parent_path = Path(parent).expanduser().resolve()
    if child_path == parent_path:
        return True
    return parent_path in child_path.parents
