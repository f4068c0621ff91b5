"""
Configuration management for tuna.

Usage:
    from tuna.config import load_config, build_registry

    result = load_config()
    registry = build_registry(result.config)
    registry.resolve_model("sonnet")  # ("anthropic/claude-sonnet-4", "openrouter")
"""

from .schemas import (
    ProviderConfig,
    TunaConfig,
    resolve_env_vars,
)

from .rate_limit import (
    RateLimit,
    parse_rate_limit,
)

from .registry import (
    Provider,
    ProviderRegistry,
    resolve_api_token,
)

from .loader import (
    CONFIG_FILENAME,
    LoadResult,
    load_config,
    load_config_file,
    find_config_file,
    build_registry,
    deprecation_warning,
)


__all__ = [
    # Schemas
    "ProviderConfig",
    "TunaConfig",
    "resolve_env_vars",
    # Rate limits
    "RateLimit",
    "parse_rate_limit",
    # Registry
    "Provider",
    "ProviderRegistry",
    "resolve_api_token",
    # Loading
    "CONFIG_FILENAME",
    "LoadResult",
    "load_config",
    "load_config_file",
    "find_config_file",
    "build_registry",
    "deprecation_warning",
]
