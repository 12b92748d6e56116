"""Path helpers for short-config."""

import logging
from pathlib import Path

from .exceptions import InvalidPathError

logger = logging.getLogger(__name__)


def canonicalize(path: Path) -> Path:
    """Return the canonical absolute form of a path.

    The path does not need to exist. Symlinks and ``..`` segments are
    resolved so two spellings of the same file compare equal.

    Examples:
        >>> canonicalize(Path("/project/./sub/../short.yml"))
        PosixPath('/project/short.yml')
    """
    return Path(path).expanduser().resolve()


def require_absolute(path: Path, what: str = "path") -> Path:
    """Ensure a path is absolute.

    Args:
        path: Path to check
        what: Human readable description used in the error message

    Returns:
        The path, unchanged

    Raises:
        InvalidPathError: If the path is relative
    """
    path = Path(path)
    if not path.is_absolute():
        raise InvalidPathError(f"{what} must be an absolute path: {path}")
    return path


def file_name(path: Path) -> str:
    """Return the base name of a path.

    Raises:
        InvalidPathError: If the path has no file name (e.g. ``/`` or ``.``)
    """
    name = Path(path).name
    if not name:
        raise InvalidPathError(f"path has no file name: {path}")
    return name


def env_name_from_file(path: Path) -> str:
    """Derive the logical env name from an env file path.

    At most one leading dot is stripped from the base name.

    Examples:
        >>> env_name_from_file(Path("env/.example"))
        'example'
        >>> env_name_from_file(Path("env/example"))
        'example'
        >>> env_name_from_file(Path("env/..hidden"))
        '.hidden'
    """
    name = file_name(path)
    return name[1:] if name.startswith(".") else name


def env_file_name(env_name: str) -> str:
    """Return the on-disk file name for a logical env name (``dev`` -> ``.dev``)."""
    return f".{env_name}"


def find_local_cfg(start_dir: Path, name: str) -> Path | None:
    """Search a directory and its parents for a local configuration file.

    Args:
        start_dir: Directory to start from (usually the current directory)
        name: File name of the local configuration

    Returns:
        Canonical path to the first file found walking upwards, or None
    """
    start_dir = canonicalize(start_dir)
    for directory in (start_dir, *start_dir.parents):
        candidate = directory / name
        if candidate.is_file():
            logger.debug(f"Found local configuration {candidate}")
            return candidate
    logger.debug(f"No local configuration named '{name}' above {start_dir}")
    return None
