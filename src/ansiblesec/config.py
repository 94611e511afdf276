"""Global configuration — YAML config file, env vars, XDG defaults."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

from ansiblesec.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = ".ansiblesec.yml"


def _default_cache_dir() -> Path:
    xdg = os.environ.get("XDG_CACHE_HOME")
    if xdg:
        return Path(xdg) / "ansiblesec"
    return Path.home() / ".cache" / "ansiblesec"


@dataclass
class SecretsConfig:
    enabled: bool = True
    entropy_threshold: float = 4.5
    min_entropy_length: int = 20
    rules_file: str | None = None


@dataclass
class PoliciesConfig:
    enabled: bool = True
    rules_file: str | None = None
    disallow_modules: list[str] = field(
        default_factory=lambda: ["shell", "command", "raw"]
    )
    require_vault: bool = True


@dataclass
class LintingConfig:
    enabled: bool = True
    max_line_length: int = 160
    require_name: bool = True


@dataclass
class GeneralConfig:
    max_file_size: int = 10 * 1024 * 1024
    parallel_jobs: int = 0  # 0 = let the pool pick
    cache_enabled: bool = True
    cache_dir: Path | None = None
    exclude_paths: list[str] = field(
        default_factory=lambda: [".git", "venv", "node_modules", "vendor"]
    )
    exclude_patterns: list[str] = field(default_factory=lambda: ["*.retry", "*.swp"])

    def resolved_cache_dir(self) -> Path:
        return self.cache_dir if self.cache_dir is not None else _default_cache_dir()


@dataclass
class Config:
    """Application-wide configuration."""

    secrets: SecretsConfig = field(default_factory=SecretsConfig)
    policies: PoliciesConfig = field(default_factory=PoliciesConfig)
    linting: LintingConfig = field(default_factory=LintingConfig)
    general: GeneralConfig = field(default_factory=GeneralConfig)

    @classmethod
    def load(cls, path: str | Path | None = None) -> Config:
        """Load config from a YAML file with env var overrides.

        Without an explicit path, ``.ansiblesec.yml`` in the working directory
        is used when present; otherwise every section keeps its defaults.
        """
        if path is None and Path(DEFAULT_CONFIG_FILE).is_file():
            path = DEFAULT_CONFIG_FILE

        config = cls.from_dict(_read_yaml(Path(path))) if path is not None else cls()

        env_cache = os.environ.get("ANSIBLESEC_CACHE_DIR")
        if env_cache:
            config.general.cache_dir = Path(env_cache)

        env_jobs = os.environ.get("ANSIBLESEC_PARALLEL_JOBS")
        if env_jobs:
            try:
                config.general.parallel_jobs = int(env_jobs)
            except ValueError as e:
                raise ConfigError(
                    f"ANSIBLESEC_PARALLEL_JOBS must be an integer, got {env_jobs!r}"
                ) from e

        return config

    @classmethod
    def from_dict(cls, data: dict) -> Config:
        """Build a config from a parsed mapping; missing keys keep defaults."""
        config = cls()
        for section_name in ("secrets", "policies", "linting", "general"):
            section_data = data.get(section_name) or {}
            if not isinstance(section_data, dict):
                raise ConfigError(f"Config section '{section_name}' must be a mapping")
            _apply_section(getattr(config, section_name), section_name, section_data)

        if config.general.cache_dir is not None:
            config.general.cache_dir = Path(config.general.cache_dir)
        if config.general.parallel_jobs < 0:
            raise ConfigError("general.parallel_jobs must be >= 0")
        return config

    def to_dict(self) -> dict:
        result: dict = {}
        for section_name in ("secrets", "policies", "linting", "general"):
            section = getattr(self, section_name)
            values = {}
            for f in fields(section):
                value = getattr(section, f.name)
                values[f.name] = str(value) if isinstance(value, Path) else value
            result[section_name] = values
        return result

    def save(self, path: str | Path) -> None:
        Path(path).write_text(
            yaml.safe_dump(self.to_dict(), sort_keys=False), encoding="utf-8"
        )


def _read_yaml(path: Path) -> dict:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("Config YAML must be a mapping")
    return data


def _apply_section(section: object, name: str, data: dict) -> None:
    known = {f.name: f for f in fields(section)}
    for key, value in data.items():
        if key not in known:
            logger.warning("Ignoring unknown config key %s.%s", name, key)
            continue
        default = getattr(section, key)
        if not _compatible(default, value):
            raise ConfigError(
                f"Config key {name}.{key} has invalid value {value!r}"
            )
        setattr(section, key, value)


def _compatible(default: object, value: object) -> bool:
    if value is None:
        return default is None or isinstance(default, Path)
    if default is None or isinstance(default, Path):
        return isinstance(value, str)
    if isinstance(default, bool):
        return isinstance(value, bool)
    if isinstance(default, float):
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if isinstance(default, int):
        return isinstance(value, int) and not isinstance(value, bool)
    if isinstance(default, list):
        return isinstance(value, list) and all(isinstance(v, str) for v in value)
    return isinstance(value, type(default))
