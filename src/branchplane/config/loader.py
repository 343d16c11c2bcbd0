"""Layered configuration for the simulator and its CLI.

Layers, later ones winning:

- built-in defaults from ``branchplane.config.models``
- the user file ``~/.config/branchplane/config.yaml``
- the working-directory file ``.branchplane/config.yaml``
- ``BRANCHPLANE__<SECTION>__<KEY>`` environment variables
- keyword overrides passed to ``load_config``
"""

from contextvars import ContextVar
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from branchplane.config.models import BranchPlaneConfig, EngineConfig, LoggingConfig
from branchplane.core.errors import ConfigError

GLOBAL_CONFIG_PATH = Path("~/.config/branchplane/config.yaml").expanduser()
REPO_CONFIG_NAME = Path(".branchplane") / "config.yaml"

# Merged YAML files for the settings instance being built.
_file_layer: ContextVar[dict[str, Any]] = ContextVar("file_layer", default={})


def _load_yaml(path: Path) -> dict[str, Any]:
    """Mapping stored in ``path``; a missing or empty file reads as ``{}``."""
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top level must be a mapping")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Section-wise merge; neither input is modified."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


class _FileLayerSource(PydanticBaseSettingsSource):
    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:  # noqa: ARG002
        value = _file_layer.get().get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> dict[str, Any]:
        return dict(_file_layer.get())


class BranchPlaneSettings(BaseSettings):
    """Settings root; sections mirror ``BranchPlaneConfig``."""

    model_config = SettingsConfigDict(
        env_prefix="BRANCHPLANE__",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    logging: LoggingConfig = LoggingConfig()
    engine: EngineConfig = EngineConfig()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # First source wins.
        return (init_settings, env_settings, _FileLayerSource(settings_cls))


def read_config_files(repo_root: Path) -> dict[str, Any]:
    """User file overlaid with the working-directory file."""
    return _deep_merge(_load_yaml(GLOBAL_CONFIG_PATH), _load_yaml(repo_root / REPO_CONFIG_NAME))


def load_config(repo_root: Path | None = None, **overrides: Any) -> BranchPlaneConfig:
    """Resolve every layer into a validated ``BranchPlaneConfig``.

    Raises:
        ConfigError: A file is not valid YAML, or a value fails validation.
    """
    files = read_config_files(repo_root or Path.cwd())
    token = _file_layer.set(files)
    try:
        settings = BranchPlaneSettings(**overrides)
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(part) for part in first["loc"])
        raise ConfigError.invalid_value(where, first.get("input"), first["msg"]) from e
    finally:
        _file_layer.reset(token)
    return BranchPlaneConfig.model_validate(settings.model_dump())
