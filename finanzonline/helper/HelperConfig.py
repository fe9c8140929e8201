"""Central configuration helper for the FinanzOnline DataBox client."""

import logging
import math
import os
import tomllib
from pathlib import Path
from typing import Any, Mapping

from dotenv import dotenv_values
from pydantic import ValidationError

from finanzonline.errors import ConfigurationError
from finanzonline.models.config import EnvConfig, FinanzonlineConfig

ENV_PREFIX = "FINANZONLINE__"
TOML_FILE_NAME = "finanzonline.toml"
TOML_SECTION = "finanzonline"
DOTENV_FILE_NAME = ".env"

CONFIG_KEYS: list[EnvConfig] = [
    EnvConfig(env_key="TID", field="tid"),
    EnvConfig(env_key="BENID", field="benid"),
    EnvConfig(env_key="PIN", field="pin"),
    EnvConfig(env_key="HERSTELLERID", field="herstellerid"),
    EnvConfig(env_key="OUTPUT_DIR", field="output_dir"),
    EnvConfig(env_key="SESSION_TIMEOUT", field="session_timeout", val_type="number"),
    EnvConfig(env_key="QUERY_TIMEOUT", field="query_timeout", val_type="number"),
]


class HelperConfig:
    """Central configuration helper.

    Resolves the FinanzonlineConfig from (lowest to highest priority) the
    finanzonline.toml file, a .env file, the process environment and CLI
    overrides, and hands out the application logger.
    """

    def __init__(
        self,
        logger: logging.Logger,
        cli: Mapping[str, Any] | None = None,
        start_dir: str | Path | None = None,
        config_file: str | Path | None = None,
        env: Mapping[str, str | None] | None = None,
        config: FinanzonlineConfig | None = None,
    ) -> None:
        self._logger = logger
        self._cli = dict(cli or {})
        self._start_dir = Path(start_dir) if start_dir else Path.cwd()
        self._config_file = Path(config_file) if config_file else None
        self._env = env if env is not None else os.environ
        self._config = config
        self._sources: dict[str, Path] = {}

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_config(self) -> FinanzonlineConfig:
        """Return the resolved configuration, loading it on first access.

        Raises:
            ConfigurationError: If the merged settings are missing or invalid.
        """
        if self._config is None:
            self._config = self.load_config()
        return self._config

    def get_sources(self) -> dict[str, Path]:
        """Return the config files that contributed, keyed "toml" and "dotenv"."""
        return dict(self._sources)

    def get_logger(self) -> logging.Logger:
        """Return the application logger.

        Returns:
            logging.Logger: The configured logger instance.
        """
        return self._logger

    def get_string_val(self, key: str, default: str | None = None, source: Mapping[str, str | None] | None = None) -> str | None:
        """Read a string value from an environment mapping.

        Args:
            key (str): Key without prefix (case-insensitive), e.g. "TID".
            default (str | None): Fallback value if the variable is not set.
            source (Mapping | None): Mapping to read from. Defaults to the process environment.

        Returns:
            str | None: The resolved value.
        """
        source = self._env if source is None else source
        val = source.get(f"{ENV_PREFIX}{key.upper()}") or None  # empty string → None
        return val.strip() if val is not None else default

    def get_number_val(self, key: str, default: float | int | None = None, source: Mapping[str, str | None] | None = None) -> float | int | None:
        """Read a numeric value from an environment mapping.

        Raises:
            ConfigurationError: If the value cannot be parsed as a finite number.
        """
        raw = self.get_string_val(key, default=None, source=source)
        if raw is None:
            return default
        try:
            number = int(raw) if "." not in raw else float(raw)
        except ValueError:
            raise ConfigurationError(f"Environment variable '{ENV_PREFIX}{key.upper()}' is not a valid number: '{raw}'.")
        if not math.isfinite(number):
            raise ConfigurationError(f"Environment variable '{ENV_PREFIX}{key.upper()}' is not a finite number: '{raw}'.")
        return number

    ##########################################
    ################ LOADING #################
    ##########################################

    def load_config(self) -> FinanzonlineConfig:
        """Merge all configuration layers and validate the result.

        Returns:
            FinanzonlineConfig: The validated configuration.

        Raises:
            ConfigurationError: If a config file cannot be read or validation fails.
        """
        self._sources = {}
        merged = self._merge(
            self._load_toml_config(),
            self._load_dotenv_config(),
            self._map_env_to_config(self._env),
            self._pick_config(self._cli),
        )
        try:
            config = FinanzonlineConfig(**merged)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {self._format_validation_error(e)}") from e

        self._logger.debug(
            "Configuration resolved (toml=%s, dotenv=%s)",
            self._sources.get("toml"),
            self._sources.get("dotenv"),
        )
        return config

    def _load_toml_config(self) -> dict[str, Any]:
        path = self._config_file or self._find_file_upwards(self._start_dir, TOML_FILE_NAME)
        if path is None:
            return {}
        try:
            with open(path, "rb") as f:
                parsed = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigurationError(f"Could not read config file '{path}': {e}") from e

        self._sources["toml"] = path
        section = parsed.get(TOML_SECTION, {})
        return self._pick_config(section if isinstance(section, dict) else {})

    def _load_dotenv_config(self) -> dict[str, Any]:
        path = self._find_file_upwards(self._start_dir, DOTENV_FILE_NAME)
        if path is None:
            return {}
        self._sources["dotenv"] = path
        return self._map_env_to_config(dotenv_values(path))

    def _map_env_to_config(self, env: Mapping[str, str | None]) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for key in CONFIG_KEYS:
            if key.val_type == "number":
                values[key.field] = self.get_number_val(key.env_key, source=env)
            else:
                values[key.field] = self.get_string_val(key.env_key, source=env)
        return self._pick_config(values)

    @staticmethod
    def _pick_config(source: Mapping[str, Any]) -> dict[str, Any]:
        """Keep only known fields whose value has the expected type."""
        picked: dict[str, Any] = {}
        for key in CONFIG_KEYS:
            value = source.get(key.field)
            if key.val_type == "number":
                if isinstance(value, (int, float)) and not isinstance(value, bool):
                    picked[key.field] = value
            elif isinstance(value, str):
                picked[key.field] = value
        return picked

    @staticmethod
    def _merge(*configs: Mapping[str, Any]) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        for config in configs:
            for key, value in config.items():
                if value is not None:
                    merged[key] = value
        return merged

    @staticmethod
    def _find_file_upwards(start_dir: Path, filename: str) -> Path | None:
        current = start_dir.resolve()
        for directory in (current, *current.parents):
            candidate = directory / filename
            if candidate.is_file():
                return candidate
        return None

    @staticmethod
    def _format_validation_error(error: ValidationError) -> str:
        parts = []
        for item in error.errors():
            location = ".".join(str(part) for part in item.get("loc", ())) or "config"
            parts.append(f"{location}: {item.get('msg')}")
        return "; ".join(parts)
