"""Exceptions for short-config."""

from pathlib import Path


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class ConfigFileError(ConfigError):
    """Error reading or writing a configuration or env file."""

    pass


class ConfigParseError(ConfigError):
    """Error parsing a configuration document or env file."""

    def __init__(self, message: str, path: Path | None = None):
        super().__init__(message)
        self.path = path


class ConfigValidationError(ConfigParseError):
    """Configuration document parsed but has an invalid structure."""

    pass


class EnvFormatError(ConfigParseError):
    """Malformed variable line in an env file."""

    def __init__(self, message: str, line: str, line_number: int, path: Path | None = None):
        super().__init__(message, path)
        self.line = line
        self.line_number = line_number


class AlreadyExistsError(ConfigError):
    """Setup, env or provider template already registered."""

    pass


class NotFoundError(ConfigError):
    """Setup, env, variable or project registration not found."""

    pass


class InvalidPathError(ConfigError):
    """Path is not absolute where required, or has no file name."""

    pass


class MissingPathError(ConfigError):
    """Local configuration has no backing file."""

    pass


class NoCurrentSelectionError(ConfigError):
    """No setup or env selected, neither for this invocation nor persisted."""

    pass


class ExecError(ConfigError):
    """External command failed or could not be started."""

    def __init__(self, message: str, returncode: int | None = None, stdout: str = "", stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
