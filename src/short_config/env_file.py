"""Ordered, comment-preserving env file model.

An env file is a sequence of entries, one per line:

- ``Blank``: the line is empty once surrounding whitespace is trimmed
- ``Comment``: the line starts with ``#``; everything after it is kept verbatim
- ``Variable``: ``name=value`` split on the *last* ``=``, both sides trimmed

Serializing the parsed entries reproduces the file, except that whitespace
around variable names and values is normalized away:

    >>> env = EnvFile.parse("A=a \\n#test\\nB =b")
    >>> env.serialize()
    'A=a\\n#test\\nB=b\\n'
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from .exceptions import ConfigError
from .exceptions import ConfigFileError
from .exceptions import EnvFormatError
from .exceptions import MissingPathError
from .exceptions import NotFoundError
from .utils import env_name_from_file
from .utils import file_name as require_file_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnvVar:
    """A ``name=value`` line."""

    name: str
    value: str

    def render(self) -> str:
        return f"{self.name}={self.value}\n"


@dataclass(frozen=True)
class EnvComment:
    """A ``#text`` line. ``text`` excludes the leading ``#``."""

    text: str

    def render(self) -> str:
        return f"#{self.text}\n"


@dataclass(frozen=True)
class EnvBlank:
    """An empty line."""

    def render(self) -> str:
        return "\n"


EnvEntry = EnvVar | EnvComment | EnvBlank


def _split_lines(text: str) -> list[str]:
    # Lines end with "\n" only; a trailing "\r" is dropped.
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def parse_line(line: str, line_number: int = 1) -> EnvEntry:
    """Classify a single line.

    Args:
        line: Line content without its newline
        line_number: 1-based position, used in error messages

    Returns:
        The entry for this line

    Raises:
        EnvFormatError: If the line is a malformed variable
    """
    if not line.strip():
        return EnvBlank()

    prefix, sep, rest = line.partition("#")
    if sep and not prefix:
        return EnvComment(rest)

    if "=" not in line:
        raise EnvFormatError(f"line {line_number}: expected name=value, got {line!r}", line, line_number)

    name, value = line.rsplit("=", 1)
    name = name.strip()
    value = value.strip()
    if any(char.isspace() for char in name):
        raise EnvFormatError(f"line {line_number}: whitespace in variable name {name!r}", line, line_number)
    return EnvVar(name, value)


def parse(text: str) -> list[EnvEntry]:
    """Parse env file content into an ordered list of entries.

    Raises:
        EnvFormatError: On the first malformed variable line
    """
    return [parse_line(line, number) for number, line in enumerate(_split_lines(text), start=1)]


def serialize(entries: list[EnvEntry]) -> str:
    """Render entries back to env file content."""
    return "".join(entry.render() for entry in entries)


class EnvFile:
    """An env file: ordered entries plus the file they came from.

    Duplicate variable names are allowed; lookups return the first one in
    file order.

    Args:
        entries: Initial entries (copied)
        path: Originating file, used for the logical name and for save()
    """

    def __init__(self, entries: list[EnvEntry] | None = None, path: Path | None = None):
        self._entries: list[EnvEntry] = list(entries or [])
        self.path = Path(path) if path is not None else None

    @classmethod
    def parse(cls, text: str, path: Path | None = None) -> "EnvFile":
        """Build an env file from text.

        Raises:
            EnvFormatError: If a variable line is malformed
        """
        try:
            entries = parse(text)
        except EnvFormatError as e:
            if path is None:
                raise
            raise EnvFormatError(f"{path}: {e}", e.line, e.line_number, Path(path)) from e
        return cls(entries, path)

    @classmethod
    def from_file(cls, path: Path) -> "EnvFile":
        """Load an env file from disk.

        Args:
            path: Env file path; its base name gives the logical env name

        Returns:
            Parsed env file with ``path`` recorded

        Raises:
            InvalidPathError: If the path has no file name
            ConfigFileError: If the file cannot be read
            EnvFormatError: If a variable line is malformed
        """
        path = Path(path)
        require_file_name(path)
        try:
            with open(path, encoding="utf-8", newline="") as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigFileError(f"Failed to read env file {path}: {e}") from e
        return cls.parse(text, path)

    # ===== Identity =====

    @property
    def file_name(self) -> str | None:
        """Base name of the originating file, or None when unknown."""
        return self.path.name if self.path is not None else None

    @property
    def name(self) -> str | None:
        """Logical env name: base name with one leading dot stripped."""
        return env_name_from_file(self.path) if self.path is not None else None

    @property
    def dot_name(self) -> str | None:
        name = self.name
        return f".{name}" if name is not None else None

    # ===== Entries =====

    @property
    def entries(self) -> tuple[EnvEntry, ...]:
        return tuple(self._entries)

    def get(self, name: str) -> tuple[str, str]:
        """Return the first variable with the given name.

        Raises:
            NotFoundError: If no variable has that name
        """
        for entry in self._entries:
            if isinstance(entry, EnvVar) and entry.name == name:
                return entry.name, entry.value
        where = f" in env '{self.name}'" if self.name is not None else ""
        raise NotFoundError(f"Variable '{name}' not found{where}")

    def is_set(self, name: str, value: str) -> bool:
        """True if the variable exists and its (first) value equals ``value``."""
        try:
            _, current = self.get(name)
        except ConfigError:
            return False
        return current == value

    def add(self, name: str, value: str) -> None:
        """Append a variable. Existing variables with the same name are kept."""
        self._entries.append(EnvVar(name, value))

    def add_comment(self, text: str) -> None:
        self._entries.append(EnvComment(text))

    def add_blank_line(self) -> None:
        self._entries.append(EnvBlank())

    def __iter__(self) -> Iterator[tuple[str, str]]:
        for entry in self._entries:
            if isinstance(entry, EnvVar):
                yield entry.name, entry.value

    def to_dict(self) -> dict[str, str]:
        """Variables as a mapping; the first occurrence of a name wins."""
        values: dict[str, str] = {}
        for name, value in self:
            values.setdefault(name, value)
        return values

    def __contains__(self, name: object) -> bool:
        return any(isinstance(entry, EnvVar) and entry.name == name for entry in self._entries)

    # ===== Serialization =====

    def serialize(self) -> str:
        return serialize(self._entries)

    def __str__(self) -> str:
        return self.serialize()

    def __repr__(self) -> str:
        return f"EnvFile(name={self.name!r}, entries={len(self._entries)})"

    def save(self, path: Path | None = None) -> Path:
        """Write the env file (whole-file overwrite).

        Args:
            path: Target file; defaults to the originating file. When given,
                it becomes the env file's path.

        Returns:
            Path written

        Raises:
            MissingPathError: If no path is given and none is recorded
            ConfigFileError: If the write fails
        """
        if path is not None:
            self.path = Path(path)
        if self.path is None:
            raise MissingPathError("env file has no path to save to")

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8", newline="") as f:
                f.write(self.serialize())
        except OSError as e:
            raise ConfigFileError(f"Failed to write env file {self.path}: {e}") from e
        logger.info(f"Saved env '{self.name}' to {self.path}")
        return self.path


def read_env_dir(directory: Path) -> tuple[list[EnvFile], list[ConfigError]]:
    """Load every env file (dot file) in a directory.

    Unreadable or malformed files do not abort the scan; their errors are
    returned alongside the env files that did load.

    Args:
        directory: Directory to scan (not recursive)

    Returns:
        Tuple of (env files sorted by file name, errors)
    """
    directory = Path(directory)
    envs: list[EnvFile] = []
    errors: list[ConfigError] = []

    if not directory.is_dir():
        logger.debug(f"Env directory {directory} does not exist")
        return envs, errors

    for path in sorted(directory.iterdir()):
        if not path.name.startswith(".") or not path.is_file():
            continue
        try:
            envs.append(EnvFile.from_file(path))
        except ConfigError as e:
            logger.warning(f"Skipping env file {path}: {e}")
            errors.append(e)

    return envs, errors
