"""Application settings using Pydantic Settings."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv
from efrev.errors import ConfigurationError


SETTINGS_SECTION = "CodeGenerator"
DEFAULT_SETTINGS_FILE = "appsettings.json"
DEFAULT_CONFIG_FILE = "efrev.json"

# Settings keys as they appear in appsettings.json / efrev.json
_JSON_KEYS = {
    "ConnectionString": "connection_string",
    "ProviderName": "provider",
    "Provider": "provider",
    "SchemaName": "schema_name",
    "Namespace": "namespace",
    "DbContextName": "db_context_name",
    "UseDataAnnotations": "use_data_annotations",
    "IncludeComments": "include_comments",
    "IsPluralize": "is_pluralize",
    "UsePascalCase": "use_pascal_case",
    "SingularizeEntityNames": "singularize_entity_names",
    "GenerateSeparateFiles": "generate_separate_files",
    "OutputDirectory": "output_directory",
    "ElementsToGenerate": "elements_to_generate",
    "PayloadTolerance": "payload_tolerance",
    "MaxWorkers": "max_workers",
}


def find_and_load_env_file():
    """Find and load .env file in current directory or parent directories."""
    current = Path.cwd().resolve()
    # Check current directory and up to 3 levels up
    for _ in range(4):
        env_path = current / ".env"
        if env_path.exists():
            load_dotenv(env_path, override=False)
            return str(env_path)
        parent = current.parent
        if parent == current:  # Reached root
            break
        current = parent
    return None


# Load .env file before Settings class is defined
find_and_load_env_file()


class Settings(BaseSettings):
    """Code generator configuration settings."""

    # Schema source
    connection_string: Optional[str] = None
    provider: str = "SqlServer"
    schema_name: Optional[str] = None

    # Generated code
    namespace: str = "GeneratedApp.Data"
    db_context_name: str = "AppDbContext"
    use_data_annotations: bool = True
    include_comments: bool = True
    is_pluralize: bool = True
    use_pascal_case: bool = True
    singularize_entity_names: bool = False
    generate_separate_files: bool = True
    output_directory: Path = Path("./Generated")
    elements_to_generate: List[str] = ["POCO", "Configuration", "DbContext"]

    # Analysis
    payload_tolerance: int = 2
    max_workers: int = 1

    # Logging Configuration
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    model_config = SettingsConfigDict(
        env_prefix="EFREV_",
        env_file=None,  # We load it manually with dotenv
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def _read_json_settings(path: Path, section: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Read a settings JSON file and translate its keys to Settings field names."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in settings file {path}: {e}") from e

    if section is not None:
        if section not in data:
            return None
        data = data[section]

    translated = {}
    for key, value in data.items():
        field = _JSON_KEYS.get(key, key)
        if field in Settings.model_fields:
            translated[field] = value
    return translated


def merge_settings(target: Settings, overrides: Dict[str, Any]) -> Settings:
    """
    Overlay non-empty values from overrides onto target.

    None and empty strings never override an existing value.

    Args:
        target: Base settings
        overrides: Field name -> value mapping

    Returns:
        New Settings instance with overrides applied
    """
    updates = {
        key: value
        for key, value in overrides.items()
        if value is not None and value != "" and key in Settings.model_fields
    }
    if not updates:
        return target
    return Settings.model_validate({**target.model_dump(), **updates})


def validate_settings(settings: Settings) -> Settings:
    """
    Check that settings are complete enough to run code generation.

    Raises:
        ConfigurationError: If the connection string is missing
    """
    if not settings.connection_string:
        if settings.provider.lower() == "snapshot":
            raise ConfigurationError(
                "Snapshot provider requires the snapshot file path as the connection string."
            )
        raise ConfigurationError(
            "Connection string is required. Please specify it in configuration file or command line."
        )
    if settings.payload_tolerance < 0:
        raise ConfigurationError("payload_tolerance must not be negative")
    if settings.max_workers < 1:
        raise ConfigurationError("max_workers must be at least 1")
    return settings


def load_settings(
    settings_file: Optional[Path] = None,
    config_file: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
    validate: bool = True,
) -> Settings:
    """
    Build settings from layered sources.

    Order (later wins): defaults and EFREV_* environment variables,
    the CodeGenerator section of appsettings.json, a custom efrev.json,
    then command-line overrides.

    Args:
        settings_file: Path to appsettings.json
        config_file: Optional path to efrev.json
        overrides: Command-line values keyed by Settings field name
        validate: Whether to run validate_settings on the result

    Returns:
        Merged Settings instance
    """
    from efrev.config.logging import get_logger

    logger = get_logger(__name__)
    settings = Settings()

    settings_path = Path(settings_file or DEFAULT_SETTINGS_FILE)
    if settings_path.exists():
        section = _read_json_settings(settings_path, section=SETTINGS_SECTION)
        if section is None:
            logger.warning(f"'{SETTINGS_SECTION}' section not found in {settings_path}")
        else:
            settings = merge_settings(settings, section)
            logger.debug(f"Loaded settings from {settings_path}")
    else:
        logger.warning(f"{settings_path} not found")

    if config_file:
        config_path = Path(config_file)
        if config_path.exists():
            settings = merge_settings(settings, _read_json_settings(config_path) or {})
            logger.debug(f"Applied custom configuration from {config_path}")
        else:
            logger.warning(f"Custom configuration file {config_path} not found")

    if overrides:
        settings = merge_settings(settings, overrides)

    if validate:
        validate_settings(settings)
    return settings


def default_settings_dict() -> Dict[str, Any]:
    """Default configuration in the JSON key style used by the config files."""
    defaults = Settings(connection_string="")
    reverse_keys = {v: k for k, v in _JSON_KEYS.items() if k != "Provider"}
    data = {}
    for field, key in reverse_keys.items():
        value = getattr(defaults, field)
        data[key] = str(value) if isinstance(value, Path) else value
    return data


def write_default_config(out_dir: Path) -> List[Path]:
    """
    Write default efrev.json and appsettings.json files.

    Args:
        out_dir: Directory to write into (created if missing)

    Returns:
        Paths of the written files
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    defaults = default_settings_dict()

    config_path = out_dir / DEFAULT_CONFIG_FILE
    config_path.write_text(json.dumps(defaults, indent=2), encoding="utf-8")

    appsettings_path = out_dir / DEFAULT_SETTINGS_FILE
    appsettings_path.write_text(
        json.dumps({SETTINGS_SECTION: defaults}, indent=2), encoding="utf-8"
    )
    return [config_path, appsettings_path]


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
