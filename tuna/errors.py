"""
Exception taxonomy for tuna.

Configuration errors are fatal at startup, plan errors are fatal to a run
before any provider is contacted, and everything else is a per-task failure
that the executor records and moves past.
"""

from typing import Optional


class TunaError(Exception):
    """Base class for all tuna errors."""


# ===== Configuration =====

class ConfigError(TunaError):
    """Provider configuration is invalid."""


class DuplicateProviderError(ConfigError):
    def __init__(self, name: str):
        super().__init__(f"duplicate provider name {name!r}")
        self.name = name


class MissingCredentialError(ConfigError):
    def __init__(self, provider: str, reason: str):
        super().__init__(f"provider {provider!r}: {reason}")
        self.provider = provider


class InvalidRateLimitError(ConfigError):
    def __init__(self, value: str, reason: Optional[str] = None):
        message = reason or (
            f"invalid rate limit format {value!r}: "
            "expected format like '10rpm', '5rps', or '100rph'"
        )
        super().__init__(message)
        self.value = value


class UnknownDefaultProviderError(ConfigError):
    def __init__(self, name: str):
        super().__init__(f"default_provider {name!r} not found in providers list")
        self.name = name


class NoConfigError(ConfigError):
    """No configuration file and no environment fallback."""


# ===== Plans =====

class PlanError(TunaError):
    """Plan cannot be created, loaded or executed as given."""


class EmptyPlanError(PlanError):
    pass


class PlanNotFoundError(PlanError):
    pass


class ModelHashCollisionError(PlanError):
    def __init__(self, first: str, second: str, digest: str):
        super().__init__(
            f"models {first!r} and {second!r} share output directory hash {digest}"
        )
        self.models = (first, second)
        self.digest = digest


class PromptError(PlanError):
    pass


# ===== Per-task =====

class RateLimitCancelledError(TunaError):
    """Cancelled while waiting for a provider's rate limit token."""

    def __init__(self, provider: str):
        super().__init__(f"rate limit wait cancelled for provider {provider!r}")
        self.provider = provider


class TaskCancelledError(TunaError):
    """Cancelled before or during the provider call."""


class QueryReadError(TunaError):
    def __init__(self, path, cause: Exception):
        super().__init__(f"failed to read query file {path}: {cause}")
        self.path = path
        self.__cause__ = cause


class MalformedResponseError(TunaError):
    """Provider returned a payload without the expected shape."""


class EmptyChoicesError(MalformedResponseError):
    pass


class TaskError(TunaError):
    """A single (model, query) task failed; wraps the underlying cause."""

    def __init__(self, model: str, query_id: str, cause: BaseException):
        super().__init__(f"model={model} query={query_id}: {cause}")
        self.model = model
        self.query_id = query_id
        self.cause = cause
        self.__cause__ = cause
