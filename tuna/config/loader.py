"""
Configuration loading.

Priority:
1. .tuna.yaml in the current directory or any parent
2. ~/.config/tuna.yaml
3. LLM_API_TOKEN + LLM_BASE_URL environment variables (deprecated)

A .env file in the working directory is loaded first, so any of the
environment variables above may come from it.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import ValidationError

from tuna.errors import ConfigError, NoConfigError
from .registry import ProviderRegistry
from .schemas import ProviderConfig, TunaConfig


CONFIG_FILENAME = ".tuna.yaml"
GLOBAL_CONFIG_PATH = Path(".config") / "tuna.yaml"

ENV_API_TOKEN = "LLM_API_TOKEN"
ENV_BASE_URL = "LLM_BASE_URL"


@dataclass
class LoadResult:
    config: TunaConfig
    source: str              # Config file path, or "environment"
    deprecated: bool = False


def load_config(start_dir: Optional[Path] = None, home: Optional[Path] = None) -> LoadResult:
    """
    Find and load configuration.

    Args:
        start_dir: Directory to start the upward search from (default: cwd)
        home: Home directory for the user-level config (default: Path.home())

    Raises:
        ConfigError: A config file exists but is invalid
        NoConfigError: Nothing found and no environment fallback
    """
    load_dotenv(find_dotenv(usecwd=True))

    project_path = find_config_file(start_dir)
    if project_path is not None:
        return LoadResult(config=load_config_file(project_path), source=str(project_path))

    global_path = (home or Path.home()) / GLOBAL_CONFIG_PATH
    if global_path.exists():
        return LoadResult(config=load_config_file(global_path), source=str(global_path))

    return LoadResult(config=_load_from_env(), source="environment", deprecated=True)


def load_config_file(path: Path) -> TunaConfig:
    path = Path(path)
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"failed to read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"failed to parse config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"invalid configuration in {path}: expected a mapping at top level")

    try:
        return TunaConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration in {path}:\n{e}") from e


def find_config_file(start_dir: Optional[Path] = None) -> Optional[Path]:
    """Search for .tuna.yaml from start_dir up to the filesystem root."""
    directory = Path(start_dir or Path.cwd()).resolve()
    for candidate in [directory, *directory.parents]:
        config_path = candidate / CONFIG_FILENAME
        if config_path.is_file():
            return config_path
    return None


def build_registry(config: TunaConfig) -> ProviderRegistry:
    return ProviderRegistry.build(
        providers=config.providers,
        aliases=config.aliases,
        default_provider=config.default_provider,
    )


def _load_from_env() -> TunaConfig:
    token = os.getenv(ENV_API_TOKEN, "")
    base_url = os.getenv(ENV_BASE_URL, "")
    missing = [name for name, value in ((ENV_API_TOKEN, token), (ENV_BASE_URL, base_url)) if not value]
    if missing:
        raise NoConfigError(
            f"no configuration found: create {CONFIG_FILENAME} or set "
            f"{' and '.join(missing)}"
        )

    return TunaConfig(
        default_provider="default",
        providers=[
            ProviderConfig(
                name="default",
                base_url=base_url,
                api_token_env=ENV_API_TOKEN,
            )
        ],
    )


def deprecation_warning() -> str:
    return (
        f"Warning: using deprecated environment variables ({ENV_API_TOKEN}, {ENV_BASE_URL}).\n"
        f"Create a {CONFIG_FILENAME} file instead:\n\n"
        "  default_provider: default\n"
        "  providers:\n"
        "    - name: default\n"
        f"      base_url: ${{{ENV_BASE_URL}}}\n"
        f"      api_token_env: {ENV_API_TOKEN}\n"
    )
