"""Configuration management for rshell.

Settings come from one of two file formats plus environment variables:

* the line-oriented ``shconfig`` format, one ``KEY value`` (or
  ``KEY=value``) pair per line: ``RHOST``, ``RPORT``, ``HSIZE``, ``VSIZE``;
* YAML (any path ending in ``.yaml`` or ``.yml``), mapping directly onto
  the settings sections.

Malformed or missing settings are never fatal: the offending section
falls back to its defaults and a warning is logged.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("shconfig")

DEFAULT_HSIZE = 75
DEFAULT_VSIZE = 40

YAML_SUFFIXES = (".yaml", ".yml")


class RemoteConfig(BaseModel):
    host: str = Field(default="localhost", min_length=1)
    port: int = Field(default=8001, ge=1, le=65535)
    connect_timeout: float = Field(default=10.0, gt=0)


class TerminalConfig(BaseModel):
    hsize: int = Field(default=DEFAULT_HSIZE, gt=0, description="Pager line width")
    vsize: int = Field(default=DEFAULT_VSIZE, gt=0, description="Pager page height")


class ShellConfig(BaseModel):
    prompt: str = Field(default="sshell> ")
    search_path: tuple[str, ...] = Field(default=("/bin", "/usr/bin"))
    idle_timeout: float = Field(
        default=5.0, gt=0,
        description="Seconds without data after which a foreground response is complete",
    )
    recv_bufsize: int = Field(default=1024, gt=0)
    max_line_length: int = Field(default=128, gt=0)
    local_prefix: str = Field(default="!", min_length=1)
    background_token: str = Field(default="&", min_length=1)


class LoggingConfig(BaseModel):
    level: str = Field(default="WARNING")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


SECTIONS: dict[str, type[BaseModel]] = {
    "remote": RemoteConfig,
    "terminal": TerminalConfig,
    "shell": ShellConfig,
    "logging": LoggingConfig,
}


class Settings(BaseSettings):
    """Root configuration for rshell.

    Environment variables (``RSHELL_REMOTE__HOST`` and so on) take
    priority over values passed in from the configuration file.
    """

    model_config = {
        "env_prefix": "RSHELL_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    terminal: TerminalConfig = Field(default_factory=TerminalConfig)
    shell: ShellConfig = Field(default_factory=ShellConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from the config file and the environment.

    Priority: env vars > .env file > config file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    if path.suffix.lower() in YAML_SUFFIXES:
        raw = _read_yaml(path)
    else:
        raw = _read_shconfig(path)

    sections = _validate_sections(raw)
    try:
        return Settings(**sections)
    except ValidationError as e:
        logger.warning("Ignoring invalid environment overrides: %s", e)
        return Settings.model_construct(
            **{name: SECTIONS[name].model_validate(data) for name, data in sections.items()}
        )


def _validate_sections(raw: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Validate each section on its own, falling back to defaults per section."""
    sections: dict[str, dict[str, Any]] = {}
    for name, model in SECTIONS.items():
        data = raw.get(name) or {}
        try:
            sections[name] = model.model_validate(data).model_dump()
        except ValidationError as e:
            logger.warning(
                "Invalid %s settings, using defaults: %s",
                name, "; ".join(err["msg"] for err in e.errors()),
            )
            sections[name] = model().model_dump()
    return sections


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        logger.warning("Config file %s not found, using defaults + env vars", path)
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Cannot read config file %s, using defaults: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Config file %s is not a mapping, using defaults", path)
        return {}
    logger.info("Loaded configuration from %s", path)
    return data


def _read_shconfig(path: Path) -> dict[str, Any]:
    """Parse the ``KEY value`` line format.

    A missing file is created empty. Terminal sizes that are absent or not
    positive integers are replaced by the defaults, which are also appended
    to the file so the next start finds them.
    """
    remote: dict[str, Any] = {}
    terminal: dict[str, Any] = {}

    if not path.exists():
        logger.warning("Config file %s not found, will now attempt to create one", path)
        try:
            path.touch(mode=0o600)
        except OSError as e:
            logger.warning("Cannot create config file %s, using defaults: %s", path, e)
            return {}

    try:
        with open(path) as f:
            lines = f.readlines()
    except OSError as e:
        logger.warning("Cannot read config file %s, using defaults: %s", path, e)
        return {}

    for line in lines:
        # "KEY value" or "KEY=value"
        tokens = line.replace("=", " ", 1).split()
        if len(tokens) < 2:
            continue
        key, value = tokens[0], tokens[1]
        if key in ("HSIZE", "VSIZE"):
            size = _positive_int(value)
            if size is not None:
                terminal[key.lower()] = size
        elif key == "RHOST":
            remote["host"] = value
        elif key == "RPORT":
            remote["port"] = value
        # lines that do not make sense are ignored

    for key, default, label in (
        ("hsize", DEFAULT_HSIZE, "horizontal"),
        ("vsize", DEFAULT_VSIZE, "vertical"),
    ):
        if key not in terminal:
            terminal[key] = default
            _append_line(path, f"{key.upper()} {default}\n")
            logger.warning(
                "%s: cannot obtain a valid %s terminal size, will use the default",
                path, label,
            )

    return {"remote": remote, "terminal": terminal}


def _positive_int(value: str) -> int | None:
    try:
        n = int(value)
    except ValueError:
        return None
    return n if n > 0 else None


def _append_line(path: Path, line: str) -> None:
    try:
        with open(path, "a") as f:
            f.write(line)
    except OSError as e:
        logger.debug("Cannot append %r to %s: %s", line.strip(), path, e)
