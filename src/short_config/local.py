"""Local (project-committed) configuration store."""

import logging
from pathlib import Path
from typing import Any

from .exceptions import AlreadyExistsError
from .exceptions import ConfigValidationError
from .exceptions import NotFoundError
from .models import CloudformationProvider
from .models import LocalSetupCfg
from .models import ProviderDescriptor

logger = logging.getLogger(__name__)


class LocalCfg:
    """Named setups of a project.

    Setup records are returned by reference: mutating the record returned
    by ``get_setup`` mutates the store.

    Args:
        path: Backing file once persisted, None for a configuration that was
            never bound to a file
        setups: Initial setups
    """

    def __init__(self, path: Path | None = None, setups: list[LocalSetupCfg] | None = None):
        self.path = Path(path) if path is not None else None
        self._setups: list[LocalSetupCfg] = []
        for setup in setups or []:
            self._insert(setup)

    @property
    def setups(self) -> list[LocalSetupCfg]:
        return list(self._setups)

    def setup_names(self) -> list[str]:
        return [setup.name for setup in self._setups]

    def add_setup(self, name: str, provider: ProviderDescriptor) -> LocalSetupCfg:
        """Add a new setup.

        Args:
            name: Setup name, unique within this configuration
            provider: Provider descriptor

        Returns:
            The stored setup record

        Raises:
            AlreadyExistsError: If the name is taken, or another setup uses
                the same CloudFormation template
        """
        setup = LocalSetupCfg(name=name, provider=provider)
        self._insert(setup)
        logger.info(f"Added setup '{name}'")
        return setup

    def get_setup(self, name: str) -> LocalSetupCfg | None:
        for setup in self._setups:
            if setup.name == name:
                return setup
        return None

    def remove_by_name(self, name: str) -> bool:
        """Remove a setup by name.

        Returns:
            True if removed, False if not found
        """
        before = len(self._setups)
        self._setups = [setup for setup in self._setups if setup.name != name]
        removed = len(self._setups) != before
        if removed:
            logger.info(f"Removed setup '{name}'")
        return removed

    def rename_setup(self, name: str, new_name: str) -> LocalSetupCfg:
        """Rename a setup in place.

        Raises:
            NotFoundError: If no setup is named ``name``
            AlreadyExistsError: If ``new_name`` is taken by another setup
        """
        setup = self.get_setup(name)
        if setup is None:
            raise NotFoundError(f"Setup '{name}' not found")
        if new_name != name and self.get_setup(new_name) is not None:
            raise AlreadyExistsError(f"Setup '{new_name}' already exists")
        setup.name = new_name
        logger.info(f"Renamed setup '{name}' to '{new_name}'")
        return setup

    def env_paths(self) -> list[Path]:
        """One env directory per setup: ``public_env_dir`` or the project root (``Path()``)."""
        return [setup.public_env_dir if setup.public_env_dir is not None else Path() for setup in self._setups]

    def _insert(self, setup: LocalSetupCfg) -> None:
        if self.get_setup(setup.name) is not None:
            raise AlreadyExistsError(f"Setup '{setup.name}' already exists")
        if isinstance(setup.provider, CloudformationProvider):
            for other in self._setups:
                if other.provider == setup.provider:
                    raise AlreadyExistsError(
                        f"Template {setup.provider.template_path} is already used by setup '{other.name}'"
                    )
        self._setups.append(setup)

    # ===== Document form =====

    def to_dict(self) -> dict[str, Any]:
        return {"setups": [setup.to_dict() for setup in self._setups]}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None, path: Path | None = None) -> "LocalCfg":
        """Build a local configuration from its document form.

        Raises:
            ConfigValidationError: If the document structure is invalid,
                including duplicate setup names
        """
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigValidationError(f"local configuration must be a mapping, got {type(data).__name__}")
        setups = data.get("setups") or []
        if not isinstance(setups, list):
            raise ConfigValidationError("local configuration: 'setups' must be a list")
        try:
            return cls(path=path, setups=[LocalSetupCfg.from_dict(item) for item in setups])
        except AlreadyExistsError as e:
            raise ConfigValidationError(f"local configuration: {e}") from e

    def __repr__(self) -> str:
        return f"LocalCfg(path={self.path!r}, setups={self.setup_names()!r})"
