"""Data models for short-config."""

import logging
import os
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Any

from .exceptions import ConfigValidationError
from .utils import canonicalize
from .utils import find_local_cfg
from .utils import require_absolute

logger = logging.getLogger(__name__)

LOCAL_CFG_FILE_ENV = "SHORT_LOCAL_CFG_FILE"
GLOBAL_CFG_DIR_ENV = "SHORT_GLOBAL_CFG_DIR"
DEFAULT_LOCAL_CFG_FILE = "short.yml"
DEFAULT_GLOBAL_CFG_DIR = ".short"
GLOBAL_CFG_FILE = "cfg.yml"


def _require_str(data: dict[str, Any], key: str, what: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ConfigValidationError(f"{what}: '{key}' must be a non-empty string, got {value!r}")
    return value


def _optional_path(data: dict[str, Any], key: str, what: str) -> Path | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigValidationError(f"{what}: '{key}' must be a path string, got {value!r}")
    return Path(value)


# ===== Providers =====


@dataclass(frozen=True)
class NoProvider:
    """Setup without a provider."""

    kind = "none"

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.kind}


@dataclass(frozen=True)
class CloudformationProvider:
    """AWS CloudFormation provider.

    Attributes:
        template_path: Template file, relative to the project root
    """

    template_path: Path
    kind = "cloudformation"

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.kind, "template": str(self.template_path)}


ProviderDescriptor = NoProvider | CloudformationProvider


def provider_from_dict(data: Any) -> ProviderDescriptor:
    """Build a provider descriptor from its document form.

    Absent or unrecognized provider data maps to NoProvider.

    Raises:
        ConfigValidationError: If a known provider is missing its fields
    """
    if not isinstance(data, dict):
        return NoProvider()

    kind = data.get("name")
    if kind == CloudformationProvider.kind:
        template = _optional_path(data, "template", "cloudformation provider")
        if template is None:
            raise ConfigValidationError("cloudformation provider: 'template' is required")
        return CloudformationProvider(template)

    if kind not in (None, NoProvider.kind):
        logger.debug(f"Unknown provider '{kind}', treating as none")
    return NoProvider()


# ===== Setups =====


@dataclass
class LocalSetupCfg:
    """A setup as committed in the project.

    Attributes:
        name: Unique within the local configuration
        provider: How the setup is deployed
        public_env_dir: Shared env directory, relative to the project root
    """

    name: str
    provider: ProviderDescriptor = field(default_factory=NoProvider)
    public_env_dir: Path | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.public_env_dir is not None:
            data["public_env_dir"] = str(self.public_env_dir)
        data["provider"] = self.provider.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "LocalSetupCfg":
        if not isinstance(data, dict):
            raise ConfigValidationError(f"setup entry must be a mapping, got {data!r}")
        name = _require_str(data, "name", "setup")
        return cls(
            name=name,
            provider=provider_from_dict(data.get("provider")),
            public_env_dir=_optional_path(data, "public_env_dir", f"setup '{name}'"),
        )


@dataclass
class GlobalSetupCfg:
    """Machine-only overrides for a local setup.

    Provider data is project-shared and therefore never mirrored here.

    Attributes:
        name: Name of the mirrored local setup
        private_env_dir: Absolute directory holding env files kept off the project
    """

    name: str
    private_env_dir: Path | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.private_env_dir is not None:
            data["private_env_dir"] = str(self.private_env_dir)
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "GlobalSetupCfg":
        if not isinstance(data, dict):
            raise ConfigValidationError(f"global setup entry must be a mapping, got {data!r}")
        name = _require_str(data, "name", "global setup")
        return cls(name=name, private_env_dir=_optional_path(data, "private_env_dir", f"global setup '{name}'"))


# ===== Current selection =====


@dataclass
class CurrentSelection:
    """Persisted pointer to the setup/env in use on this machine."""

    setup: str | None = None
    env: str | None = None

    def is_empty(self) -> bool:
        return self.setup is None and self.env is None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.setup is not None:
            data["setup"] = self.setup
        if self.env is not None:
            data["env"] = self.env
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "CurrentSelection | None":
        if data is None:
            return None
        if not isinstance(data, dict):
            raise ConfigValidationError(f"'current' must be a mapping, got {data!r}")
        setup = data.get("setup")
        env = data.get("env")
        for key, value in (("setup", setup), ("env", env)):
            if value is not None and not isinstance(value, str):
                raise ConfigValidationError(f"current.{key} must be a string, got {value!r}")
        return cls(setup=setup, env=env)


@dataclass(frozen=True)
class Settings:
    """Per-invocation selection override. Never persisted.

    Values here win over the persisted current selection.
    """

    setup: str | None = None
    env: str | None = None


# ===== Paths =====


@dataclass(frozen=True)
class ConfigPaths:
    """Paths to the local and global configuration files.

    Immutable configuration for where the two stores live. Applications
    inject these paths to define their configuration policy; use
    ``ConfigPaths.discover`` for the default one.

    Attributes:
        local: Project configuration file (committed with the project)
        global_: Per-machine configuration file (kept in the home directory)
    """

    local: Path
    global_: Path

    def __post_init__(self):
        object.__setattr__(self, "local", require_absolute(self.local, "local configuration path"))
        object.__setattr__(self, "global_", require_absolute(self.global_, "global configuration path"))

    @property
    def project_root(self) -> Path:
        return self.local.parent

    @classmethod
    def discover(cls, cwd: Path | None = None, home: Path | None = None) -> "ConfigPaths":
        """Build the default path policy.

        The local file is searched from ``cwd`` upwards; when no project is
        found it is placed directly in ``cwd``. The global file lives in a
        directory under ``home``.

        Environment:
            SHORT_LOCAL_CFG_FILE: local file name (default ``short.yml``)
            SHORT_GLOBAL_CFG_DIR: global directory name (default ``.short``)

        Args:
            cwd: Starting directory (default: current directory)
            home: Home directory (default: ``Path.home()``)
        """
        cwd = canonicalize(cwd if cwd is not None else Path.cwd())
        home = canonicalize(home if home is not None else Path.home())

        local_name = os.environ.get(LOCAL_CFG_FILE_ENV) or DEFAULT_LOCAL_CFG_FILE
        global_dir = os.environ.get(GLOBAL_CFG_DIR_ENV) or DEFAULT_GLOBAL_CFG_DIR

        local = find_local_cfg(cwd, local_name) or cwd / local_name
        return cls(local=local, global_=home / global_dir / GLOBAL_CFG_FILE)
