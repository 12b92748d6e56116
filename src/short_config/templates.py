"""Discovery of AWS CloudFormation templates in a project tree."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError
from .exceptions import ConfigFileError
from .exceptions import ConfigParseError

logger = logging.getLogger(__name__)

YAML_EXTENSIONS = (".yaml", ".yml")
TEMPLATE_VERSION = "2010-09-09"


class TemplateLoader(yaml.SafeLoader):
    """Safe loader accepting CloudFormation short-form tags (``!Ref``, ``!Sub``, ...)."""


def _construct_intrinsic(loader: TemplateLoader, tag_suffix: str, node: yaml.Node) -> Any:
    if isinstance(node, yaml.ScalarNode):
        return loader.construct_scalar(node)
    if isinstance(node, yaml.SequenceNode):
        return loader.construct_sequence(node, deep=True)
    return loader.construct_mapping(node, deep=True)


TemplateLoader.add_multi_constructor("!", _construct_intrinsic)


@dataclass(frozen=True)
class TemplateFile:
    """A CloudFormation template found on disk."""

    path: Path
    format_version: str
    description: str | None = None


def _candidate_paths(directory: Path) -> list[Path]:
    paths = []
    for path in directory.rglob("*"):
        relative = path.relative_to(directory)
        if any(part.startswith(".") for part in relative.parts[:-1]):
            continue
        if path.suffix.lower() in YAML_EXTENSIONS and path.is_file():
            paths.append(path)
    return sorted(paths)


def read_template(path: Path) -> TemplateFile | None:
    """Read one file and return it if it is a CloudFormation template.

    Files that do not mention the template format version are skipped
    without being parsed.

    Raises:
        ConfigFileError: If the file cannot be read
        ConfigParseError: If it looks like a template but is not valid YAML
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigFileError(f"Failed to read {path}: {e}") from e

    if TEMPLATE_VERSION not in text:
        return None

    try:
        data = yaml.load(text, Loader=TemplateLoader)
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Failed to parse template {path}: {e}", path) from e

    if not isinstance(data, dict) or "AWSTemplateFormatVersion" not in data:
        return None

    description = data.get("Description")
    return TemplateFile(
        path=path,
        format_version=str(data["AWSTemplateFormatVersion"]),
        description=str(description) if description is not None else None,
    )


def find_templates(directory: Path) -> tuple[list[TemplateFile], list[ConfigError]]:
    """Find CloudFormation templates under a directory.

    Hidden directories are skipped. A file that cannot be read or parsed
    does not stop the scan; its error is collected instead.

    Args:
        directory: Root of the search

    Returns:
        Tuple of (templates sorted by path, errors)
    """
    templates: list[TemplateFile] = []
    errors: list[ConfigError] = []
    directory = Path(directory)

    if not directory.is_dir():
        return templates, errors

    for path in _candidate_paths(directory):
        try:
            template = read_template(path)
        except ConfigError as e:
            logger.warning(f"Skipping template candidate {path}: {e}")
            errors.append(e)
            continue
        if template is not None:
            logger.debug(f"Found template {path}")
            templates.append(template)

    return templates, errors
