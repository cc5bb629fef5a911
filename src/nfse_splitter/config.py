"""
Configuration management using Pydantic Settings.

Provides type-safe access to:
- Classification rule (tag name + tomador/prestador values), loaded from
  environment variables, .env, and an optional config/classification.yaml
- Runtime settings (content extensions, worker count, issue export dir)

The classification rule is modeled as an explicit, immutable value
(ClassificationConfig). The process-wide default returned by
get_classification_config() is only a convenience for callers; the
classifier and pipelines always receive a config value explicitly.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nfse_splitter.exceptions import ConfigurationError
from nfse_splitter.validators import (
    validate_extensions,
    validate_max_workers,
    validate_tag_name,
)


DEFAULT_TAG_NAME = "IssRetido"
DEFAULT_TOMADOR_VALUE = "1"
DEFAULT_PRESTADOR_VALUE = "2"

DEFAULT_CLASSIFICATION_FILE = Path('config') / 'classification.yaml'


class ClassificationConfig(BaseModel):
    """
    Tag/value rule used to bucket each note.

    ABRASF default: IssRetido = 1 (withheld by the tomador) or 2 (not withheld,
    due by the prestador).

    The model is frozen. Editing produces a new value via with_updates(), so
    classifying with a config is a pure function of (content, config).

    Construction does NOT reject an empty tag name: the config is user-editable
    and may pass through invalid states. ensure_valid() is the single gate,
    called once before a run touches any file.

    Attributes:
        tag_name: XML tag whose value decides the category
        tomador_value: Exact value meaning "tomador"
        prestador_value: Exact value meaning "prestador"

    Example:
        >>> config = ClassificationConfig()
        >>> config.tag_name
        'IssRetido'
        >>> config.with_updates(tag_name='tipoRecolhimento').tag_name
        'tipoRecolhimento'
    """

    tag_name: str = Field(
        default=DEFAULT_TAG_NAME,
        description="XML tag name matched case-insensitively",
        examples=["IssRetido", "tipoRecolhimento"]
    )
    tomador_value: str = Field(
        default=DEFAULT_TOMADOR_VALUE,
        description="Value (exact string match) classifying a note as tomador",
        examples=["1"]
    )
    prestador_value: str = Field(
        default=DEFAULT_PRESTADOR_VALUE,
        description="Value (exact string match) classifying a note as prestador",
        examples=["2"]
    )

    model_config = ConfigDict(frozen=True)

    def with_updates(self, **changes: str) -> 'ClassificationConfig':
        """
        Return a new config with the given fields replaced.

        Raises:
            KeyError: If a field name is unknown
        """
        unknown = set(changes) - set(type(self).model_fields)
        if unknown:
            raise KeyError(f"Unknown classification fields: {sorted(unknown)}")
        return type(self)(**{**self.model_dump(), **changes})

    def ensure_valid(self) -> 'ClassificationConfig':
        """
        Check that the config can drive a classification run.

        Returns:
            self, to allow chaining

        Raises:
            ConfigurationError: If tag_name is empty or malformed
        """
        try:
            validate_tag_name(self.tag_name)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        return self


class ClassificationSettings(BaseSettings):
    """
    Classification defaults loaded from environment and YAML.

    Resolution order (highest first):
        1. Explicit keyword arguments
        2. Environment variables / .env (NFSE_TAG_NAME, NFSE_TOMADOR_VALUE,
           NFSE_PRESTADOR_VALUE)
        3. YAML file at NFSE_CLASSIFICATION_FILE or config/classification.yaml
        4. ABRASF defaults (IssRetido, "1", "2")

    Example YAML:
        tag_name: IssRetido
        tomador_value: "1"
        prestador_value: "2"
    """

    tag_name: str = DEFAULT_TAG_NAME
    tomador_value: str = DEFAULT_TOMADOR_VALUE
    prestador_value: str = DEFAULT_PRESTADOR_VALUE
    classification_file: Optional[str] = Field(
        default=None,
        description="Optional path to a YAML file with classification defaults"
    )

    model_config = SettingsConfigDict(
        env_prefix='NFSE_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    @model_validator(mode='before')
    @classmethod
    def load_yaml_config(cls, data: Any) -> Any:
        """
        Merge values from the YAML file underneath env/init values.

        A missing default file is fine; a missing explicitly-named file is not.
        """
        if not isinstance(data, dict):
            return data

        explicit_path = data.get('classification_file')
        config_path = Path(explicit_path) if explicit_path else DEFAULT_CLASSIFICATION_FILE

        if not config_path.exists():
            if explicit_path:
                raise FileNotFoundError(
                    f"Classification config file not found at {config_path}"
                )
            return data

        with open(config_path, 'r', encoding='utf-8') as f:
            yaml_data = yaml.safe_load(f) or {}

        if not isinstance(yaml_data, dict):
            raise ValueError(
                f"Classification config at {config_path} must be a mapping, "
                f"got {type(yaml_data).__name__}"
            )

        # YAML turns unquoted 1 into int; values are compared as strings
        from_file = {
            key: str(yaml_data[key])
            for key in ('tag_name', 'tomador_value', 'prestador_value')
            if yaml_data.get(key) is not None
        }
        return {**from_file, **data}

    def to_classification_config(self) -> ClassificationConfig:
        """Build the immutable ClassificationConfig value."""
        return ClassificationConfig(
            tag_name=self.tag_name,
            tomador_value=self.tomador_value,
            prestador_value=self.prestador_value
        )


class AppConfig(BaseSettings):
    """
    Runtime settings loaded from environment variables.

    Environment Variables (from .env):
        NFSE_CONTENT_EXTENSIONS: JSON list of extensions, e.g. '[".xml"]'
        NFSE_MAX_WORKERS: Worker threads for ParallelIngestionPipeline
        NFSE_ISSUES_DIR: Directory for issue CSV exports

    Example:
        >>> config = get_app_config()
        >>> config.content_extensions
        ['.xml']
    """

    content_extensions: List[str] = Field(
        default_factory=lambda: ['.xml'],
        description="File extensions recognized as XML content (case-insensitive)"
    )

    max_workers: int = Field(
        default=4,
        description="Worker threads used by ParallelIngestionPipeline"
    )

    issues_dir: str = Field(
        default="data/issues",
        description="Directory where issue CSV reports are written"
    )

    model_config = SettingsConfigDict(
        env_prefix='NFSE_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    _validate_extensions = field_validator('content_extensions')(validate_extensions)
    _validate_max_workers = field_validator('max_workers')(validate_max_workers)


# Singleton pattern - loaded once, cached until reset
_app_config: Optional[AppConfig] = None
_classification_config: Optional[ClassificationConfig] = None


def get_app_config() -> AppConfig:
    """
    Get global application config instance (lazy-loaded singleton).

    Returns:
        Singleton AppConfig instance
    """
    global _app_config
    if _app_config is None:
        _app_config = AppConfig()
    return _app_config


def get_classification_config() -> ClassificationConfig:
    """
    Get the current process-wide classification config.

    Loaded lazily from ClassificationSettings on first access. The pipelines
    read this once per run (when no explicit config is passed), so updating it
    never reclassifies records that already exist.

    Returns:
        Current ClassificationConfig value
    """
    global _classification_config
    if _classification_config is None:
        _classification_config = ClassificationSettings().to_classification_config()
    return _classification_config


def set_classification_config(config: ClassificationConfig) -> ClassificationConfig:
    """Replace the process-wide classification config. Affects future runs only."""
    global _classification_config
    if not isinstance(config, ClassificationConfig):
        raise TypeError(
            f"Expected ClassificationConfig, got {type(config).__name__}"
        )
    _classification_config = config
    return config


def update_classification_config(**changes: str) -> ClassificationConfig:
    """
    Edit fields of the process-wide classification config.

    Example:
        >>> update_classification_config(tag_name='tipoRecolhimento')
        ClassificationConfig(tag_name='tipoRecolhimento', ...)
    """
    return set_classification_config(get_classification_config().with_updates(**changes))


def reset_config() -> None:
    """Drop cached singletons so the next access reloads from env/YAML."""
    global _app_config, _classification_config
    _app_config = None
    _classification_config = None


def config_summary() -> Dict[str, Any]:
    """Snapshot of effective configuration, for logging and the batch script."""
    app = get_app_config()
    classification = get_classification_config()
    return {
        'tag_name': classification.tag_name,
        'tomador_value': classification.tomador_value,
        'prestador_value': classification.prestador_value,
        'content_extensions': list(app.content_extensions),
        'max_workers': app.max_workers,
        'issues_dir': app.issues_dir,
    }
