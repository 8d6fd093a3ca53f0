from typing import Optional
import logging
import os
import tomllib
from logging.handlers import TimedRotatingFileHandler
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

ENV_PREFIX = "KOLLECTION_"

_config = None
_settings = None


class Settings(BaseModel):
    """Validated view of the configuration used by the library itself.

    Values from the config file and environment arrive as strings or TOML
    scalars; pydantic coerces them to the declared types.
    """

    model_config = ConfigDict(extra="ignore")

    trampoline_threshold: int = Field(
        default=32,
        ge=0,
        description="Pipelines with more stages than this are run on the greenlet trampoline "
                    "instead of nested generators.",
    )
    log_level: str = Field(default="WARNING", description="Root level used by configure_logger.")
    logger_levels: Optional[str] = Field(default=None, description='"logger:LEVEL,..." assignments.')
    logger_files: Optional[str] = Field(default=None, description='"logger:path,..." assignments.')


def parse_key_value_str(field_list: str, require_value: bool = False) -> Dict[str, str]:
    """Split a "key:value,key:value" list into a dictionary.

    Blank entries are skipped.  A key without a value maps to the last dotted
    part of the key, unless require_value is set.

    Raises:
        ValueError: If require_value is True and a key is missing a value.
    """
    result = {}
    for entry in field_list.split(","):
        key, _, value = entry.partition(":")
        key, value = key.strip(), value.strip()
        if not key:
            continue
        if not value:
            if require_value:
                raise ValueError(f"Value required for property '{key}'")
            value = key.rsplit(".", 1)[-1]
        result[key] = value
    return result


def reset_config():
    """Drop the cached configuration and settings.

    The next call to get_config() or get_settings() reloads from disk and
    environment variables.
    """
    global _config, _settings
    _config = None
    _settings = None


def _read_config_file(path: str) -> Dict[str, Any]:
    config_path = os.path.expanduser(path)
    if not os.path.exists(config_path):
        logger.debug(f"Config file {config_path} not found, using empty config")
        return {}
    logger.info(f"Reading config from {config_path}")
    with open(config_path, 'rb') as f:
        return tomllib.load(f)


def _environment_overrides() -> Dict[str, str]:
    """KOLLECTION_* variables with the prefix stripped and the name lowercased."""
    return {name[len(ENV_PREFIX):].lower(): value
            for name, value in os.environ.items() if name.startswith(ENV_PREFIX)}


def get_config(reload=False, path="~/.kollection.toml", ignore_env=False):
    """Get the configuration from the config file and environment variables.

    Args:
        reload (bool, optional): Force reload config from disk. Defaults to False.
        path (str, optional): Path to config file. Defaults to "~/.kollection.toml".
        ignore_env (bool, optional): Skip the environment variable overlay.

    Returns:
        dict: Configuration dictionary combining file and environment settings.
        Environment variables win over the file.  The result is cached until
        reset_config() or reload=True.
    """
    global _config, _settings
    if _config is None or reload:
        config = _read_config_file(path)
        if not ignore_env:
            overrides = _environment_overrides()
            if overrides:
                logger.debug(f"Environment overrides: {sorted(overrides)}")
            config.update(overrides)
        _config = config
        _settings = None
    return _config


def get_settings() -> Settings:
    """Return the current configuration validated as Settings.

    Validation runs once per loaded configuration; later calls return the
    same object.
    """
    global _settings
    if _settings is None:
        _settings = Settings.model_validate(get_config())
    return _settings


def _named_logger(name: str) -> logging.Logger:
    return logging.getLogger(None if name == "root" else name)


def configure_logger(logger_levels: Optional[str] = None, base_level: Optional[str] = None,
                     logger_files: Optional[str] = None):
    """Send log output of selected loggers to the console and to files.

    Args:
        logger_levels (str, optional): "logger:LEVEL,..." pairs.  Each named
            logger gets that level and a single console handler.  Use "root"
            for the root logger.  Defaults to the logger_levels setting.
        base_level (str, optional): Level for logging.basicConfig.  Defaults to
            the log_level setting.
        logger_files (str, optional): "logger:path,..." pairs.  Each named
            logger also writes to a file rotated at midnight.  Defaults to the
            logger_files setting.

    Examples:
        >>> configure_logger("kollection.pipe.core:DEBUG")
    """
    settings = get_settings()
    logging.basicConfig(level=(base_level or settings.log_level).upper())
    formatter = logging.Formatter('%(asctime)s - %(levelname)s:%(name)s:%(message)s')

    levels = logger_levels or settings.logger_levels
    for name, level in parse_key_value_str(levels or "", require_value=True).items():
        target = _named_logger(name)
        target.setLevel(level.upper())
        target.handlers.clear()
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        target.addHandler(console_handler)

    files = logger_files or settings.logger_files
    for name, file_name in parse_key_value_str(files or "", require_value=True).items():
        file_handler = TimedRotatingFileHandler(file_name, when='midnight', backupCount=7)
        file_handler.setFormatter(formatter)
        _named_logger(name).addHandler(file_handler)
