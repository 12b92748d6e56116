"""Running external programs (editors, cloud CLIs) with a dry-run mode."""

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .env_file import EnvFile
from .exceptions import ExecError
from .exceptions import NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecContext:
    """Execution policy shared by every command of one invocation.

    Attributes:
        dry_run: Describe commands without running them
    """

    dry_run: bool = False


@dataclass(frozen=True)
class ExecOutput:
    stdout: str
    stderr: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class Software:
    """An external program and its arguments.

    Use ``Software.new`` to resolve the program on PATH.

    Args:
        path: Program path (or bare name in dry-run)
        context: Execution policy
    """

    def __init__(self, path: Path, context: ExecContext):
        self.path = Path(path)
        self.context = context
        self._args: list[str] = []

    @classmethod
    def new(cls, name: str, context: ExecContext) -> "Software":
        """Resolve a program by name.

        In dry-run the name is used as-is, so missing programs can still be
        described.

        Raises:
            NotFoundError: If the program is not on PATH
        """
        if context.dry_run:
            return cls(Path(name), context)
        resolved = shutil.which(name)
        if resolved is None:
            raise NotFoundError(f"Command not found on PATH: {name}")
        return cls(Path(resolved), context)

    @property
    def args(self) -> list[str]:
        return list(self._args)

    def arg(self, arg: str) -> "Software":
        self._args.append(str(arg))
        return self

    def extend(self, args: list[str]) -> "Software":
        for arg in args:
            self.arg(arg)
        return self

    def command_line(self) -> str:
        """Shell-quoted rendering of the command, for display."""
        return shlex.join([str(self.path), *self._args])

    def __str__(self) -> str:
        return self.command_line()

    def run(
        self,
        cwd: Path | None = None,
        env: EnvFile | None = None,
        check: bool = True,
    ) -> ExecOutput | None:
        """Run the program and capture its output.

        Args:
            cwd: Working directory
            env: Variables added to the inherited environment
            check: Raise on a non-zero exit code

        Returns:
            Captured output, or None in dry-run

        Raises:
            ExecError: If the program cannot be started, or exits non-zero
                with ``check`` set
        """
        if self.context.dry_run:
            logger.info(f"[dry-run] {self.command_line()}")
            return None

        logger.info(f"Running {self.command_line()}")
        environ = None
        if env is not None:
            environ = {**os.environ, **env.to_dict()}

        try:
            completed = subprocess.run(
                [str(self.path), *self._args],
                cwd=str(cwd) if cwd is not None else None,
                env=environ,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise ExecError(f"Failed to execute {self.path}: {e}") from e

        output = ExecOutput(stdout=completed.stdout, stderr=completed.stderr, returncode=completed.returncode)
        logger.debug(f"{self.path.name} exited with {output.returncode}")
        if check and not output.ok:
            raise ExecError(
                f"{self.command_line()} exited with code {output.returncode}",
                returncode=output.returncode,
                stdout=output.stdout,
                stderr=output.stderr,
            )
        return output
