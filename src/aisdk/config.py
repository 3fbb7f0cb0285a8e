"""Configuration management for aisdk projects.

Parses aisdk.toml files with support for:
- Provider endpoints and credentials
- Default generation settings
- Telemetry settings

Example aisdk.toml structure:

    [providers.openai]
    api_key = "${OPENAI_API_KEY}"
    api_base = "https://api.openai.com/v1"
    model = "gpt-4o-mini"
    timeout_sec = 30

    [defaults]
    provider = "openai"
    temperature = 0.2

    [telemetry]
    enabled = true
    otlp_endpoint = "http://localhost:4317"

Note: Use proper TOML tables (not string-encoded Python dictionaries).
"""

from __future__ import annotations

import logging
import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

if sys.version_info >= (3, 11):
    import tomllib as toml
else:
    import tomli as toml

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "aisdk.toml"


def _load_env_file(env_path: Path) -> None:
    """Load environment variables from .env file."""
    if not env_path.exists():
        return

    try:
        with open(env_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue

                # KEY=VALUE, KEY='VALUE' or KEY="VALUE"
                if "=" in line:
                    key, _, value = line.partition("=")
                    key = key.strip()
                    if key.startswith("export "):
                        key = key[len("export ") :].strip()
                    value = value.strip()

                    if len(value) >= 2 and value[0] in ('"', "'") and value[-1] == value[0]:
                        value = value[1:-1]

                    # Existing environment wins
                    if key and key not in os.environ:
                        os.environ[key] = value
    except OSError as e:
        logger.warning("Failed to load .env file %s: %s", env_path, e)


_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def _expand_env_vars(value: Any) -> Any:
    """Recursively expand ${VAR} and $VAR environment variable references.

    Unknown variables are left untouched.
    """
    if isinstance(value, str):

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1) or match.group(2)
            return os.environ.get(var_name, match.group(0))

        return _ENV_PATTERN.sub(replace_var, value)
    elif isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    else:
        return value


@dataclass
class ProviderConfig:
    """One [providers.<name>] table."""

    name: str
    api_key: Optional[str] = None
    api_base: Optional[str] = None
    model: Optional[str] = None
    timeout_sec: int = 30
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class DefaultsConfig:
    """Generation defaults applied when a request leaves them unset."""

    provider: Optional[str] = None
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None


@dataclass
class TelemetryConfig:
    enabled: bool = False
    service_name: str = "aisdk"
    otlp_endpoint: Optional[str] = None


@dataclass
class ProjectConfig:
    """Complete aisdk project configuration."""

    providers: dict[str, ProviderConfig] = field(default_factory=dict)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)

    @classmethod
    def load(cls, path: Path = Path(CONFIG_FILENAME)) -> ProjectConfig:
        """Load configuration from an aisdk.toml file.

        Loads the first .env file found in:
        1. Same directory as aisdk.toml
        2. Current working directory
        3. Parent directories of aisdk.toml

        Expands ${VAR} environment variable references in the config.
        Returns defaults when the file does not exist.

        Raises:
            ConfigError: The file is not valid TOML or a table has the wrong shape
        """
        if not path.exists():
            return cls()

        env_search_paths = [path.parent / ".env", Path.cwd() / ".env"]
        current = path.parent.resolve()
        while current != current.parent:
            env_search_paths.append(current / ".env")
            current = current.parent

        for env_path in env_search_paths:
            if env_path.exists():
                _load_env_file(env_path)
                break

        try:
            data = _expand_env_vars(toml.loads(path.read_text(encoding="utf-8")))
        except (OSError, toml.TOMLDecodeError) as e:
            raise ConfigError(f"Failed to parse {path}: {e}") from e

        config = cls()

        providers = data.get("providers", {})
        if not isinstance(providers, dict):
            raise ConfigError(f"{path}: [providers] must be a table")
        for provider_name, provider_data in providers.items():
            if not isinstance(provider_data, dict):
                logger.warning("Skipping providers.%s: not a table", provider_name)
                continue
            config.providers[provider_name] = ProviderConfig(
                name=provider_name,
                api_key=provider_data.get("api_key"),
                api_base=provider_data.get("api_base"),
                model=provider_data.get("model"),
                timeout_sec=provider_data.get("timeout_sec", 30),
                headers=dict(provider_data.get("headers", {})),
            )

        if "defaults" in data:
            defaults = data["defaults"]
            config.defaults = DefaultsConfig(
                provider=defaults.get("provider"),
                temperature=defaults.get("temperature"),
                max_output_tokens=defaults.get("max_output_tokens"),
            )

        if "telemetry" in data:
            telemetry = data["telemetry"]
            config.telemetry = TelemetryConfig(
                enabled=telemetry.get("enabled", False),
                service_name=telemetry.get("service_name", "aisdk"),
                otlp_endpoint=telemetry.get("otlp_endpoint"),
            )

        logger.info("Loaded %s (%d providers)", path, len(config.providers))
        return config

    def provider(self, name: Optional[str] = None) -> Optional[ProviderConfig]:
        """Provider table by name, or the [defaults] provider."""
        name = name or self.defaults.provider
        if name is None:
            return None
        return self.providers.get(name)


def load_project_config(start_dir: Path = Path(".")) -> ProjectConfig:
    """Load project configuration, searching up from start_dir."""
    current = start_dir.resolve()
    while current != current.parent:
        config_path = current / CONFIG_FILENAME
        if config_path.exists():
            return ProjectConfig.load(config_path)
        current = current.parent

    # No config found, return defaults
    return ProjectConfig()


__all__ = [
    "CONFIG_FILENAME",
    "DefaultsConfig",
    "ProjectConfig",
    "ProviderConfig",
    "TelemetryConfig",
    "load_project_config",
]
