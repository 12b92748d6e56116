"""Configuration manager tying the local and global stores together."""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any

import yaml

from .env_file import EnvFile
from .env_file import read_env_dir
from .exceptions import AlreadyExistsError
from .exceptions import ConfigError
from .exceptions import ConfigFileError
from .exceptions import ConfigParseError
from .exceptions import ConfigValidationError
from .exceptions import InvalidPathError
from .exceptions import MissingPathError
from .exceptions import NoCurrentSelectionError
from .exceptions import NotFoundError
from .global_cfg import GlobalCfg
from .global_cfg import GlobalProjectCfg
from .global_cfg import resolve_current
from .local import LocalCfg
from .models import CloudformationProvider
from .models import ConfigPaths
from .models import CurrentSelection
from .models import LocalSetupCfg
from .models import NoProvider
from .models import ProviderDescriptor
from .models import Settings
from .templates import TemplateFile
from .templates import find_templates
from .utils import canonicalize
from .utils import env_file_name
from .utils import require_absolute

logger = logging.getLogger(__name__)


class ConfigManager:
    """Manages the local (project) and global (machine) configuration.

    Both stores are loaded lazily on first access, created empty when their
    file does not exist yet, mutated in memory and written back with
    ``save()``. Workflow methods (``add_setup``, ``use``, ...) save on their own.

    The local store is the source of truth for setups; the global store
    mirrors them per project and adds machine-only data (private env
    directory, current selection). ``sync()`` reconciles the two.

    Args:
        paths: ConfigPaths defining where both files are located
        settings: Per-invocation selection override (never persisted)
    """

    def __init__(self, paths: ConfigPaths, settings: Settings | None = None):
        self.paths = paths
        self.settings = settings or Settings()
        self._local: LocalCfg | None = None
        self._global: GlobalCfg | None = None

    # ===== Loading / Saving =====

    @property
    def local(self) -> LocalCfg:
        if self._local is None:
            self._local = self._load_local()
        return self._local

    @property
    def global_(self) -> GlobalCfg:
        if self._global is None:
            self._global = self._load_global()
        return self._global

    @property
    def project_root(self) -> Path:
        if self.local.path is None:
            raise MissingPathError("local configuration has no file")
        return self.local.path.parent

    def load(self) -> None:
        """(Re)load both stores from disk, discarding in-memory changes."""
        self._local = self._load_local()
        self._global = self._load_global()

    def sync(self) -> GlobalProjectCfg:
        """Mirror local setups into the global store.

        Returns:
            The project's global entry

        Raises:
            MissingPathError: If the local configuration has no file
        """
        return self.global_.sync_local_project(self.local)

    def save(self) -> None:
        """Write both stores (whole-file overwrite)."""
        self.save_local()
        self.save_global()

    def save_local(self) -> None:
        if self.local.path is None:
            raise MissingPathError("local configuration has no file to save to")
        self._write_yaml(self.local.path, self.local.to_dict())
        logger.info(f"Saved local configuration to {self.local.path}")

    def save_global(self) -> None:
        self._write_yaml(self.paths.global_, self.global_.to_dict())
        logger.info(f"Saved global configuration to {self.paths.global_}")

    # ===== Setups =====

    def add_setup(self, name: str, provider: ProviderDescriptor | None = None) -> LocalSetupCfg:
        """Create a setup, mirror it globally and save.

        Args:
            name: Setup name
            provider: Provider descriptor (default: no provider)

        Raises:
            AlreadyExistsError: If the name or the provider template is taken
        """
        setup = self.local.add_setup(name, provider or NoProvider())
        self.sync()
        self.save()
        return setup

    def get_setup(self, name: str) -> LocalSetupCfg:
        """Get a local setup by name.

        Raises:
            NotFoundError: If there is no such setup
        """
        setup = self.local.get_setup(name)
        if setup is None:
            raise NotFoundError(f"Setup '{name}' not found in {self.local.path}")
        return setup

    def remove_setup(self, name: str) -> bool:
        """Remove a setup from the local store and its global mirror.

        The current selection is cleared if it pointed at the setup.

        Returns:
            True if the setup existed locally
        """
        removed = self.local.remove_by_name(name)
        changed = removed

        project = self._registered_project()
        if project is not None:
            changed = project.remove_setup(name) or changed
            if project.current is not None and project.current.setup == name:
                project.set_current(None)
                changed = True

        if not changed:
            logger.debug(f"Setup '{name}' not found, nothing to remove")
            return False

        self.save()
        return removed

    def prune(self) -> list[str]:
        """Drop global mirrors of setups that no longer exist locally.

        Sync never removes mirrors, so setups deleted from the committed file
        (e.g. by pulling someone else's change) leave them behind.

        Returns:
            Names of the dropped mirrors
        """
        project = self._registered_project()
        if project is None:
            return []
        removed = project.prune_setups(set(self.local.setup_names()))
        if not removed:
            return removed
        if project.current is not None and project.current.setup in removed:
            project.set_current(None)
        self.save_global()
        return removed

    def rename_setup(self, name: str, new_name: str) -> LocalSetupCfg:
        """Rename a setup locally and globally, keeping machine overrides.

        Raises:
            NotFoundError: If the setup does not exist
            AlreadyExistsError: If ``new_name`` is taken
        """
        self.get_setup(name)
        if new_name != name and self.local.get_setup(new_name) is not None:
            raise AlreadyExistsError(f"Setup '{new_name}' already exists")

        project = self.sync()
        if new_name != name and project.remove_setup(new_name):
            logger.info(f"Dropped stale global setup '{new_name}'")
        project.rename_setup(name, new_name)
        setup = self.local.rename_setup(name, new_name)
        self.save()
        return setup

    def set_public_env_dir(self, name: str, directory: Path | None) -> None:
        """Set (or clear) a setup's shared env directory.

        Raises:
            NotFoundError: If the setup does not exist
            InvalidPathError: If ``directory`` is absolute; it must be relative
                to the project root
        """
        setup = self.get_setup(name)
        if directory is not None and Path(directory).is_absolute():
            raise InvalidPathError(f"public env directory must be relative to the project root: {directory}")
        setup.public_env_dir = Path(directory) if directory is not None else None
        self.save_local()
        logger.info(f"Set public env directory of '{name}' to {setup.public_env_dir}")

    def set_private_env_dir(self, name: str, directory: Path | None) -> None:
        """Set (or clear) a setup's machine-only env directory.

        Raises:
            NotFoundError: If the setup does not exist
            InvalidPathError: If ``directory`` is not absolute
        """
        self.get_setup(name)
        if directory is not None:
            directory = require_absolute(directory, "private env directory")

        project = self.sync()
        global_setup = project.get_setup(name)
        global_setup.private_env_dir = directory
        self.save_global()
        logger.info(f"Set private env directory of '{name}' to {directory}")

    def unassigned_templates(self) -> tuple[list[TemplateFile], list[ConfigError]]:
        """CloudFormation templates in the project not yet used by a setup.

        Returns:
            Tuple of (templates with paths relative to the project root, scan errors)
        """
        root = self.project_root
        used = {
            setup.provider.template_path
            for setup in self.local.setups
            if isinstance(setup.provider, CloudformationProvider)
        }
        found, errors = find_templates(root)
        templates = []
        for template in found:
            relative = template.path.relative_to(root)
            if relative not in used:
                templates.append(replace(template, path=relative))
        return templates, errors

    # ===== Env files =====

    def env_dirs(self, name: str) -> tuple[Path, Path | None]:
        """Directories holding a setup's env files.

        Returns:
            Tuple of (public directory, private directory or None). The public
            directory defaults to the project root.
        """
        setup = self.get_setup(name)
        public = self.project_root / (setup.public_env_dir or Path())

        private = None
        project = self._registered_project()
        if project is not None:
            global_setup = project.get_setup(name)
            if global_setup is not None:
                private = global_setup.private_env_dir
        return public, private

    def envs(self, name: str) -> tuple[list[EnvFile], list[ConfigError]]:
        """Load every env file of a setup, public first then private.

        Returns:
            Tuple of (env files, errors for files that could not be loaded)
        """
        envs: list[EnvFile] = []
        errors: list[ConfigError] = []
        for directory in self._env_dir_list(name):
            found, failed = read_env_dir(directory)
            envs.extend(found)
            errors.extend(failed)
        return envs, errors

    def get_env(self, name: str, env: str) -> EnvFile:
        """Load one env of a setup by logical name.

        Raises:
            NotFoundError: If neither env directory has it
            EnvFormatError: If the file is malformed
        """
        for directory in self._env_dir_list(name):
            path = directory / env_file_name(env)
            if path.is_file():
                return EnvFile.from_file(path)
        raise NotFoundError(f"Env '{env}' not found for setup '{name}'")

    def new_env(self, name: str, env: str, private: bool = False, copy_from: str | None = None) -> EnvFile:
        """Create an env file for a setup.

        Args:
            name: Setup name
            env: Logical env name; the file is ``.<env>``
            private: Create it in the private directory instead of the public one
            copy_from: Existing env whose content is copied

        Raises:
            InvalidPathError: If ``env`` is not a plain file name
            NotFoundError: If the private directory is not configured, or
                ``copy_from`` does not exist
            AlreadyExistsError: If an env of that name exists in either directory
        """
        if not env or "/" in env or "\\" in env or env in (".", ".."):
            raise InvalidPathError(f"Invalid env name '{env}'")

        public, private_dir = self.env_dirs(name)
        target_dir = private_dir if private else public
        if target_dir is None:
            raise NotFoundError(f"Setup '{name}' has no private env directory")

        for directory in self._env_dir_list(name):
            if (directory / env_file_name(env)).exists():
                raise AlreadyExistsError(f"Env '{env}' already exists in {directory}")

        entries = self.get_env(name, copy_from).entries if copy_from is not None else []
        env_file = EnvFile(list(entries), target_dir / env_file_name(env))
        env_file.save()
        logger.info(f"Created env '{env}' for setup '{name}'")
        return env_file

    # ===== Current Selection =====

    def use(self, name: str, env: str | None = None) -> None:
        """Persist the current setup (and env) for this project on this machine.

        Raises:
            NotFoundError: If the setup or env does not exist
        """
        self.get_setup(name)
        if env is not None:
            self.get_env(name, env)

        project = self.sync()
        project.set_current(name, env)
        self.save_global()

    def current_selection(self) -> CurrentSelection:
        """Current setup and env, each resolved independently.

        Fields without a value in either source are None.
        """
        persisted = self._persisted_current()
        selection = CurrentSelection()
        for field in ("setup", "env"):
            try:
                setattr(selection, field, resolve_current(field, self.settings, persisted))
            except NoCurrentSelectionError:
                continue
        return selection

    def current_setup_name(self) -> str:
        """Resolve the current setup name.

        Resolution order:
        1. Per-invocation settings
        2. Persisted selection for this project

        Raises:
            NoCurrentSelectionError: If neither has a setup
        """
        return resolve_current("setup", self.settings, self._persisted_current())

    def current_env_name(self) -> str:
        """Resolve the current env name (settings first, then persisted selection)."""
        return resolve_current("env", self.settings, self._persisted_current())

    def current_setup(self) -> LocalSetupCfg:
        return self.get_setup(self.current_setup_name())

    def current_env(self) -> EnvFile:
        return self.get_env(self.current_setup_name(), self.current_env_name())

    # ===== Private Helpers =====

    def _registered_project(self) -> GlobalProjectCfg | None:
        if self.local.path is None:
            return None
        return self.global_.get_project_by_file(canonicalize(self.local.path))

    def _persisted_current(self) -> CurrentSelection | None:
        project = self._registered_project()
        return project.current if project is not None else None

    def _env_dir_list(self, name: str) -> list[Path]:
        public, private = self.env_dirs(name)
        return [public] if private is None else [public, private]

    def _load_local(self) -> LocalCfg:
        data = self._read_yaml(self.paths.local)
        if data is None:
            logger.debug(f"No local configuration at {self.paths.local}, starting empty")
        try:
            return LocalCfg.from_dict(data, path=self.paths.local)
        except ConfigValidationError as e:
            raise ConfigValidationError(f"{self.paths.local}: {e}", self.paths.local) from e

    def _load_global(self) -> GlobalCfg:
        data = self._read_yaml(self.paths.global_)
        if data is None:
            logger.debug(f"No global configuration at {self.paths.global_}, starting empty")
        try:
            return GlobalCfg.from_dict(data)
        except ConfigValidationError as e:
            raise ConfigValidationError(f"{self.paths.global_}: {e}", self.paths.global_) from e

    def _read_yaml(self, path: Path) -> dict[str, Any] | None:
        """Read YAML file.

        Args:
            path: Path to YAML file

        Returns:
            Dictionary from YAML or None if file doesn't exist

        Raises:
            ConfigFileError: If the file exists but cannot be read
            ConfigParseError: If the file is not valid YAML
        """
        if not path.exists():
            return None

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigFileError(f"Failed to read configuration from {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigParseError(f"Failed to parse configuration {path}: {e}", path) from e
        return data if data else {}

    def _write_yaml(self, path: Path, data: dict[str, Any]) -> None:
        """Write YAML file.

        Args:
            path: Path to YAML file
            data: Dictionary to write

        Raises:
            ConfigFileError: If write fails
        """
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigFileError(f"Failed to write configuration to {path}: {e}") from e
