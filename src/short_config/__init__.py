"""short-config: local/global setup configuration and env files.

This library keeps two configuration stores consistent:
- Local (typically ./short.yml): setups committed with the project
- Global (typically ~/.short/cfg.yml): per-machine mirrors of those setups,
  with private env directories and the current setup/env selection

and reads/writes the env files of each setup with their layout preserved.

Public API:
    ConfigManager: Loads, syncs and saves both stores; setup and env workflows
    ConfigPaths: Dataclass defining where both files live
    Settings: Per-invocation setup/env override
    LocalCfg, GlobalCfg, GlobalProjectCfg: The stores themselves
    EnvFile, read_env_dir: Env file model
    NoProvider, CloudformationProvider: Provider descriptors
    ConfigError and subclasses: Exception types

Example:
    ```python
    from pathlib import Path
    from short_config import CloudformationProvider, ConfigManager, ConfigPaths

    config = ConfigManager(ConfigPaths.discover())

    config.add_setup("api", CloudformationProvider(Path("api/template.yaml")))
    config.set_public_env_dir("api", Path("api/env"))
    config.new_env("api", "dev")
    config.use("api", "dev")

    env = config.current_env()
    name, value = env.get("DATABASE_URL")
    ```
"""

from .env_file import EnvBlank
from .env_file import EnvComment
from .env_file import EnvEntry
from .env_file import EnvFile
from .env_file import EnvVar
from .env_file import read_env_dir
from .exceptions import AlreadyExistsError
from .exceptions import ConfigError
from .exceptions import ConfigFileError
from .exceptions import ConfigParseError
from .exceptions import ConfigValidationError
from .exceptions import EnvFormatError
from .exceptions import ExecError
from .exceptions import InvalidPathError
from .exceptions import MissingPathError
from .exceptions import NoCurrentSelectionError
from .exceptions import NotFoundError
from .global_cfg import GlobalCfg
from .global_cfg import GlobalProjectCfg
from .local import LocalCfg
from .manager import ConfigManager
from .models import CloudformationProvider
from .models import ConfigPaths
from .models import CurrentSelection
from .models import GlobalSetupCfg
from .models import LocalSetupCfg
from .models import NoProvider
from .models import ProviderDescriptor
from .models import Settings
from .process import ExecContext
from .process import ExecOutput
from .process import Software
from .templates import TemplateFile
from .templates import find_templates
from .templates import read_template

__version__ = "0.1.0"

__all__ = [
    "ConfigManager",
    "ConfigPaths",
    "Settings",
    "LocalCfg",
    "GlobalCfg",
    "GlobalProjectCfg",
    "LocalSetupCfg",
    "GlobalSetupCfg",
    "CurrentSelection",
    "ProviderDescriptor",
    "NoProvider",
    "CloudformationProvider",
    "EnvFile",
    "EnvEntry",
    "EnvVar",
    "EnvComment",
    "EnvBlank",
    "read_env_dir",
    "ExecContext",
    "ExecOutput",
    "Software",
    "TemplateFile",
    "find_templates",
    "read_template",
    "ConfigError",
    "ConfigFileError",
    "ConfigParseError",
    "ConfigValidationError",
    "EnvFormatError",
    "AlreadyExistsError",
    "NotFoundError",
    "InvalidPathError",
    "MissingPathError",
    "NoCurrentSelectionError",
    "ExecError",
]
