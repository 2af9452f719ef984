"""Generator settings.

Settings live in ``linkforge.json`` (or ``linkforge.yaml``) at the project
root, with camelCase keys. A missing file means defaults; an unreadable file or
an invalid value aborts the run before anything is written.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

SETTINGS_FILE_NAMES = ("linkforge.json", "linkforge.yaml", "linkforge.yml")

_IDENTIFIER_RE = re.compile(r"^@?[A-Za-z_][A-Za-z0-9_]*$")


class Settings(BaseModel):
    """Options consumed by the generator."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    naming_prefix: str = Field("MVC", alias="namingPrefix")
    target_namespace: str = Field("LinkForge", alias="targetNamespace")
    split_into_multiple_files: bool = Field(False, alias="splitIntoMultipleFiles")
    rewrite_handler_sources: bool = Field(True, alias="rewriteHandlerSources")
    generate_static_files: bool = Field(True, alias="generateStaticFiles")
    static_files_path: str = Field("wwwroot", alias="staticFilesPath")
    links_namespace: str = Field("Links", alias="linksNamespace")
    excluded_static_file_extensions: List[str] = Field(
        default_factory=list, alias="excludedStaticFileExtensions"
    )

    @field_validator("naming_prefix")
    @classmethod
    def _check_identifier(cls, value: str) -> str:
        value = value.strip()
        if not _IDENTIFIER_RE.match(value):
            raise ValueError(f"'{value}' is not a valid C# identifier")
        return value

    @field_validator("target_namespace", "links_namespace")
    @classmethod
    def _check_namespace(cls, value: str) -> str:
        value = value.strip()
        if not value or not all(_IDENTIFIER_RE.match(part) for part in value.split(".")):
            raise ValueError(f"'{value}' is not a valid C# namespace")
        return value

    @field_validator("excluded_static_file_extensions")
    @classmethod
    def _normalize_extensions(cls, value: List[str]) -> List[str]:
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in value]


def _by_field_name(values: Dict[str, Any]) -> Dict[str, Any]:
    """Translate camelCase keys to field names; field names pass through."""
    aliases = {info.alias: name for name, info in Settings.model_fields.items() if info.alias}
    return {aliases.get(key, key): value for key, value in values.items()}


def find_settings_file(project_root: str) -> Optional[Path]:
    """Return the first settings file present in ``project_root``."""
    for name in SETTINGS_FILE_NAMES:
        candidate = Path(project_root) / name
        if candidate.is_file():
            return candidate
    return None


def load_settings(
    project_root: str,
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Settings:
    """Load and validate the settings for a project.

    Args:
        project_root: Directory searched for a settings file
        config_path: Explicit settings file; must exist when given
        overrides: Values (camelCase or snake_case keys) applied on top of the file

    Returns:
        Validated Settings

    Raises:
        ConfigurationError: If the file cannot be read or holds invalid values
    """
    if config_path is not None:
        path: Optional[Path] = Path(config_path)
        if not path.is_file():
            raise ConfigurationError(f"Settings file not found: {config_path}")
    else:
        path = find_settings_file(project_root)

    raw: Dict[str, Any] = {}
    if path is not None:
        try:
            with open(path, "r", encoding="utf-8-sig") as f:
                loaded = json.load(f) if path.suffix == ".json" else yaml.safe_load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot read settings file {path}: {e}") from e
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigurationError(f"Settings file {path} must contain a mapping")
        raw = loaded or {}
        logger.info(f"Loaded settings from {path}")
    else:
        logger.info("No settings file found, using defaults")

    try:
        settings = Settings.model_validate(raw)
        if overrides:
            values = settings.model_dump()
            values.update(_by_field_name(overrides))
            settings = Settings.model_validate(values)
        return settings
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from e
