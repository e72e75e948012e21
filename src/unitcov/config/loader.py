"""Configuration loading with pydantic-settings.

Supports loading configuration from multiple sources with precedence:
1. Direct kwargs (highest priority)
2. Environment variables (UNITCOV__SECTION__KEY)
3. YAML config file (unitcov.yaml in the project root, or an explicit path)
4. Built-in defaults (lowest priority)

The YAML file uses the same sections as the config models::

    logging:
      level: DEBUG
    coverage:
      format: [html, clover]
      output:
        html: build/coverage
        clover: build/clover.xml
      include: ["src/*"]
      exclude: ["src/vendor/*"]
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from unitcov.config.models import CoverageConfig, LoggingConfig, UnitCovConfig
from unitcov.core.errors import ConfigError

CONFIG_FILE_NAMES = ("unitcov.yaml", "unitcov.yml", ".unitcov.yaml")


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top level must be a mapping")
    return data


def find_config_file(root: Path) -> Path | None:
    """Return the first conventional config file present under root."""
    for name in CONFIG_FILE_NAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


class _YamlSource(PydanticBaseSettingsSource):
    """Settings source that reads from pre-loaded YAML config."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_config: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._yaml_config = yaml_config

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        val = self._yaml_config.get(field_name)
        return val, field_name, val is not None

    def __call__(self) -> dict[str, Any]:
        return self._yaml_config


def _make_settings_class(yaml_config: dict[str, Any]) -> type[BaseSettings]:
    """Create a Settings class with instance-based YAML source (thread-safe)."""

    class UnitCovSettings(BaseSettings):
        """Root config. Env vars: UNITCOV__LOGGING__LEVEL, UNITCOV__COVERAGE__FORMAT, etc."""

        model_config = SettingsConfigDict(
            env_prefix="UNITCOV__",
            env_nested_delimiter="__",
            case_sensitive=False,
        )

        logging: LoggingConfig = LoggingConfig()
        coverage: CoverageConfig = CoverageConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # Precedence (first wins): init kwargs > env vars > yaml files
            return (init_settings, env_settings, _YamlSource(settings_cls, yaml_config))

    return UnitCovSettings


def load_config(
    root: Path | None = None,
    *,
    config_file: Path | None = None,
    **kwargs: Any,
) -> UnitCovConfig:
    """Load config: defaults < YAML file < env vars < kwargs.

    Args:
        root: Project root used to look up unitcov.yaml.
              Defaults to current working directory.
        config_file: Explicit YAML file; must exist when given.
        **kwargs: Override values per section (highest precedence), e.g.
                  ``coverage={"format": ["text"]}``.

    Returns:
        Fully resolved configuration object.

    Raises:
        ConfigError: On invalid YAML syntax or validation errors.
        AmbiguousOutputPathError: When one output path is given for several formats.
    """
    root = root or Path.cwd()

    if config_file is not None:
        if not config_file.is_file():
            raise ConfigError.file_not_found(str(config_file))
        yaml_config = _load_yaml(config_file)
    else:
        found = find_config_file(root)
        yaml_config = _load_yaml(found) if found else {}

    settings_cls = _make_settings_class(yaml_config)
    try:
        settings = settings_cls(**kwargs)
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e

    return UnitCovConfig(
        logging=settings.logging,  # type: ignore[attr-defined]
        coverage=settings.coverage,  # type: ignore[attr-defined]
    )
