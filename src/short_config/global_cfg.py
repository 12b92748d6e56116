"""Global (per-machine) configuration store and local-to-global sync."""

import logging
from pathlib import Path
from typing import Any

from .exceptions import AlreadyExistsError
from .exceptions import ConfigValidationError
from .exceptions import InvalidPathError
from .exceptions import MissingPathError
from .exceptions import NoCurrentSelectionError
from .exceptions import NotFoundError
from .local import LocalCfg
from .models import CurrentSelection
from .models import GlobalSetupCfg
from .models import Settings
from .utils import canonicalize
from .utils import require_absolute

logger = logging.getLogger(__name__)


class GlobalProjectCfg:
    """Machine-side view of one project, keyed by its local configuration file.

    Args:
        file: Absolute path of the project's local configuration file
        setups: Mirrored setups with machine overrides
        current: Persisted current selection

    Raises:
        InvalidPathError: If ``file`` is not absolute
    """

    def __init__(
        self,
        file: Path,
        setups: list[GlobalSetupCfg] | None = None,
        current: CurrentSelection | None = None,
    ):
        self.file = require_absolute(file, "project file")
        self._setups: list[GlobalSetupCfg] = list(setups or [])
        self.current = current

    def set_file(self, file: Path) -> None:
        """Re-key the project in place (e.g. after the project moved).

        Raises:
            InvalidPathError: If ``file`` is not absolute
        """
        file = require_absolute(file, "project file")
        logger.info(f"Moved project {self.file} to {file}")
        self.file = file

    # ===== Setups =====

    @property
    def setups(self) -> list[GlobalSetupCfg]:
        return list(self._setups)

    def get_setup(self, name: str) -> GlobalSetupCfg | None:
        for setup in self._setups:
            if setup.name == name:
                return setup
        return None

    def add_setup(self, setup: GlobalSetupCfg) -> bool:
        """Add a setup mirror unless one with that name exists.

        Existing mirrors are left untouched.

        Returns:
            True if added, False if a mirror already existed
        """
        if self.get_setup(setup.name) is not None:
            return False
        self._setups.append(setup)
        logger.debug(f"Mirrored setup '{setup.name}' for project {self.file}")
        return True

    def remove_setup(self, name: str) -> bool:
        """Remove a setup mirror.

        Returns:
            True if removed, False if not found
        """
        before = len(self._setups)
        self._setups = [setup for setup in self._setups if setup.name != name]
        return len(self._setups) != before

    def rename_setup(self, name: str, new_name: str) -> GlobalSetupCfg | None:
        """Rename a setup mirror, keeping its overrides.

        Returns:
            The renamed mirror, or None if there was none

        Raises:
            AlreadyExistsError: If another mirror is already named ``new_name``
        """
        setup = self.get_setup(name)
        if setup is None:
            return None
        if new_name != name and self.get_setup(new_name) is not None:
            raise AlreadyExistsError(f"Global setup '{new_name}' already exists for project {self.file}")
        setup.name = new_name
        if self.current is not None and self.current.setup == name:
            self.current.setup = new_name
        return setup

    def prune_setups(self, keep: set[str]) -> list[str]:
        """Remove mirrors whose name is not in ``keep``.

        Returns:
            Names of the removed mirrors
        """
        removed = [setup.name for setup in self._setups if setup.name not in keep]
        if removed:
            self._setups = [setup for setup in self._setups if setup.name in keep]
            logger.info(f"Pruned setups {removed} from project {self.file}")
        return removed

    # ===== Current selection =====

    def set_current(self, setup: str | None, env: str | None = None) -> None:
        if setup is None and env is None:
            self.current = None
        else:
            self.current = CurrentSelection(setup=setup, env=env)
        logger.info(f"Current selection for {self.file}: setup={setup!r} env={env!r}")

    def current_setup_name(self, override: Settings | None = None) -> str:
        """Resolve the current setup name.

        Args:
            override: Per-invocation selection, consulted first

        Raises:
            NoCurrentSelectionError: If neither the override nor the persisted
                pointer names a setup
        """
        return resolve_current("setup", override, self.current)

    def current_env_name(self, override: Settings | None = None) -> str:
        """Resolve the current env name (override first, then persisted pointer)."""
        return resolve_current("env", override, self.current)

    # ===== Document form =====

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"file": str(self.file)}
        if self.current is not None and not self.current.is_empty():
            data["current"] = self.current.to_dict()
        data["setups"] = [setup.to_dict() for setup in self._setups]
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "GlobalProjectCfg":
        if not isinstance(data, dict):
            raise ConfigValidationError(f"project entry must be a mapping, got {data!r}")
        file = data.get("file")
        if not isinstance(file, str) or not file:
            raise ConfigValidationError(f"project entry: 'file' must be a non-empty string, got {file!r}")
        setups = data.get("setups") or []
        if not isinstance(setups, list):
            raise ConfigValidationError(f"project {file}: 'setups' must be a list")
        try:
            project = cls(Path(file), current=CurrentSelection.from_dict(data.get("current")))
        except InvalidPathError as e:
            raise ConfigValidationError(f"project entry: {e}") from e
        for item in setups:
            if not project.add_setup(GlobalSetupCfg.from_dict(item)):
                raise ConfigValidationError(f"project {file}: duplicate setup '{item.get('name')}'")
        return project

    def __repr__(self) -> str:
        return f"GlobalProjectCfg(file={self.file!r}, setups={[s.name for s in self._setups]!r})"


def resolve_current(field: str, override: Settings | None, persisted: CurrentSelection | None) -> str:
    """Two-step lookup of a current-selection field.

    The per-invocation override wins; otherwise the persisted pointer is used.

    Args:
        field: ``"setup"`` or ``"env"``
        override: Per-invocation selection (may be None)
        persisted: Persisted pointer (may be None)

    Raises:
        NoCurrentSelectionError: If neither source has a value
    """
    if override is not None and getattr(override, field) is not None:
        return getattr(override, field)
    if persisted is not None and getattr(persisted, field) is not None:
        return getattr(persisted, field)
    raise NoCurrentSelectionError(f"No current {field} selected")


class GlobalCfg:
    """All projects known on this machine, unique by local configuration file.

    Project records are returned by reference, so a handle obtained from
    ``get_project_by_file`` or ``sync_local_project`` stays live.
    """

    def __init__(self, projects: list[GlobalProjectCfg] | None = None):
        self._projects: list[GlobalProjectCfg] = []
        for project in projects or []:
            self.add_project(project)

    @property
    def projects(self) -> list[GlobalProjectCfg]:
        return list(self._projects)

    def add_project(self, project: GlobalProjectCfg) -> bool:
        """Register a project unless its file is already registered.

        Returns:
            True if added, False if a project with the same file existed
        """
        if self.get_project_by_file(project.file) is not None:
            logger.debug(f"Project {project.file} already registered")
            return False
        self._projects.append(project)
        logger.debug(f"Registered project {project.file}")
        return True

    def remove_project_by_file(self, file: Path) -> bool:
        """Remove the project keyed by exactly ``file``.

        Returns:
            True if removed, False if not found
        """
        file = Path(file)
        before = len(self._projects)
        self._projects = [project for project in self._projects if project.file != file]
        return len(self._projects) != before

    def get_project_by_file(self, file: Path) -> GlobalProjectCfg | None:
        file = Path(file)
        for project in self._projects:
            if project.file == file:
                return project
        return None

    def require_project_by_file(self, file: Path) -> GlobalProjectCfg:
        """Like get_project_by_file, but missing registrations are an error.

        Raises:
            NotFoundError: If no project is registered for ``file``
        """
        project = self.get_project_by_file(file)
        if project is None:
            raise NotFoundError(f"Project {file} is not registered")
        return project

    def sync_local_project(self, local: LocalCfg) -> GlobalProjectCfg:
        """Make sure every local setup has a global mirror.

        The project entry is created on first sync. Existing mirrors are
        never overwritten, and mirrors of setups deleted locally are kept
        (use ``GlobalProjectCfg.prune_setups`` to drop them).

        Args:
            local: Local configuration; must have a backing file

        Returns:
            The project entry, live

        Raises:
            MissingPathError: If ``local`` was never bound to a file
        """
        if local.path is None:
            raise MissingPathError("Cannot sync a local configuration that has no file")

        file = canonicalize(local.path)
        project = self.get_project_by_file(file)
        if project is None:
            project = GlobalProjectCfg(file)
            self.add_project(project)
            logger.info(f"Registered project {file}")

        for setup in local.setups:
            project.add_setup(GlobalSetupCfg(name=setup.name))

        return project

    # ===== Document form =====

    def to_dict(self) -> dict[str, Any]:
        return {"projects": [project.to_dict() for project in self._projects]}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "GlobalCfg":
        """Build a global configuration from its document form.

        Raises:
            ConfigValidationError: If the document structure is invalid
        """
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigValidationError(f"global configuration must be a mapping, got {type(data).__name__}")
        projects = data.get("projects") or []
        if not isinstance(projects, list):
            raise ConfigValidationError("global configuration: 'projects' must be a list")
        return cls([GlobalProjectCfg.from_dict(item) for item in projects])

    def __repr__(self) -> str:
        return f"GlobalCfg(projects={[str(p.file) for p in self._projects]!r})"
