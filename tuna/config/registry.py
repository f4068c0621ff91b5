"""
Provider registry: the validated, immutable view of provider configuration.

Resolves a model name or alias to a (full model name, provider name) pair.
Resolution never fails: a model no provider lists is routed to the default
provider so one bad model string cannot block a whole plan.
"""

import logging
import os
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from tuna.errors import (
    ConfigError,
    DuplicateProviderError,
    MissingCredentialError,
    UnknownDefaultProviderError,
)
from .rate_limit import RateLimit, parse_rate_limit
from .schemas import ProviderConfig, resolve_env_vars

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Provider:
    name: str
    base_url: str
    token: str
    rate_limit: Optional[RateLimit] = None
    models: Tuple[str, ...] = ()

    def __repr__(self):
        # Keep the token out of logs and tracebacks
        return (f"Provider(name={self.name!r}, base_url={self.base_url!r}, "
                f"rate_limit={str(self.rate_limit) if self.rate_limit else None!r}, "
                f"models={list(self.models)!r})")


def resolve_api_token(config: ProviderConfig) -> str:
    """
    Resolve a provider's bearer token.

    Priority:
    1. Direct api_token value (${ENV_VAR} references expanded)
    2. Value of the environment variable named by api_token_env

    Raises:
        MissingCredentialError: If neither yields a non-empty token
    """
    if config.api_token:
        token = resolve_env_vars(config.api_token)
        if token:
            return token
    if config.api_token_env:
        token = os.environ.get(config.api_token_env, "")
        if token:
            return token
        raise MissingCredentialError(
            config.name, f"environment variable {config.api_token_env!r} is not set"
        )
    if config.api_token:
        raise MissingCredentialError(config.name, "api_token resolved to an empty value")
    raise MissingCredentialError(config.name, "neither api_token nor api_token_env is specified")


class ProviderRegistry:
    """
    Holds providers, the alias table and the model -> provider index.

    Built once with ProviderRegistry.build() and never mutated afterwards, so
    it is safe to share across worker threads without locking.

    Example:
        >>> registry = ProviderRegistry.build(providers, {"fast": "gpt-4o-mini"}, "openai")
        >>> registry.resolve_model("fast")
        ('gpt-4o-mini', 'openai')
    """

    def __init__(
        self,
        providers: Dict[str, Provider],
        aliases: Dict[str, str],
        model_index: Dict[str, str],
        default_provider: str,
    ):
        self._providers = providers
        self._aliases = aliases
        self._model_index = model_index
        self._default_provider = default_provider

    @classmethod
    def build(
        cls,
        providers: Iterable[ProviderConfig],
        aliases: Optional[Dict[str, str]] = None,
        default_provider: str = "",
    ) -> "ProviderRegistry":
        """
        Validate provider configuration and build the registry.

        Args:
            providers: Provider definitions, in configuration order
            aliases: Short name -> full model name (one hop, never chained)
            default_provider: Provider for models no provider lists. When
                empty, the first provider takes that role.

        Raises:
            DuplicateProviderError: Two providers share a name
            MissingCredentialError: A provider has no resolvable token
            InvalidRateLimitError: A rate_limit string is malformed
            UnknownDefaultProviderError: default_provider names no provider
            ConfigError: No providers, or a provider without name/base_url
        """
        resolved: Dict[str, Provider] = {}
        model_index: Dict[str, str] = {}

        for i, config in enumerate(providers):
            if not config.name:
                raise ConfigError(f"provider[{i}]: name is required")
            if config.name in resolved:
                raise DuplicateProviderError(config.name)
            if not config.base_url:
                raise ConfigError(f"provider[{i}] {config.name!r}: base_url is required")

            token = resolve_api_token(config)
            rate_limit = parse_rate_limit(config.rate_limit)

            resolved[config.name] = Provider(
                name=config.name,
                base_url=config.base_url,
                token=token,
                rate_limit=rate_limit,
                models=tuple(config.models),
            )

            for model in config.models:
                if model in model_index and model_index[model] != config.name:
                    logger.warning(
                        f"Model {model!r} listed by providers {model_index[model]!r} "
                        f"and {config.name!r}; routing to {config.name!r}"
                    )
                model_index[model] = config.name

        if not resolved:
            raise ConfigError("at least one provider is required")

        if default_provider and default_provider not in resolved:
            raise UnknownDefaultProviderError(default_provider)

        fallback = default_provider or next(iter(resolved))

        return cls(
            providers=resolved,
            aliases=dict(aliases or {}),
            model_index=model_index,
            default_provider=fallback,
        )

    def resolve_alias(self, model: str) -> str:
        return self._aliases.get(model, model)

    def resolve_provider(self, model: str) -> str:
        return self._model_index.get(model, self._default_provider)

    def resolve_model(self, model: str) -> Tuple[str, str]:
        """
        Resolve a model name or alias.

        Returns:
            Tuple of (full_model_name, provider_name)
        """
        full_name = self.resolve_alias(model)
        return full_name, self.resolve_provider(full_name)

    def is_mapped(self, full_name: str) -> bool:
        """True if some provider lists the model (False means default routing)."""
        return full_name in self._model_index

    def provider(self, name: str) -> Provider:
        return self._providers[name]

    def providers(self) -> List[Provider]:
        return list(self._providers.values())

    def provider_names(self) -> List[str]:
        return list(self._providers.keys())

    def aliases(self) -> Dict[str, str]:
        return dict(self._aliases)

    @property
    def default_provider(self) -> str:
        return self._default_provider

    def __repr__(self):
        return (f"ProviderRegistry(providers={self.provider_names()}, "
                f"aliases={len(self._aliases)}, default={self._default_provider!r})")
