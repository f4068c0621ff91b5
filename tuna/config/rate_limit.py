import re
from dataclasses import dataclass
from typing import Optional

from tuna.errors import InvalidRateLimitError


UNIT_SECONDS = {
    "rps": 1.0,
    "rpm": 60.0,
    "rph": 3600.0,
}

_RATE_LIMIT_RE = re.compile(r'([0-9]+)(rps|rpm|rph)')


@dataclass(frozen=True)
class RateLimit:
    value: int
    unit: str

    @property
    def unit_seconds(self) -> float:
        return UNIT_SECONDS[self.unit]

    @property
    def interval(self) -> float:
        """Seconds between two admitted requests ("10rpm" -> 6.0)."""
        return self.unit_seconds / self.value

    def __str__(self) -> str:
        return f"{self.value}{self.unit}"


def parse_rate_limit(text: Optional[str]) -> Optional[RateLimit]:
    """
    Parse a rate limit like "10rpm", "5rps" or "100rph".

    Returns None for an empty value (unlimited). Whitespace, signs and
    unknown units are rejected.
    """
    if not text:
        return None

    match = _RATE_LIMIT_RE.fullmatch(text)
    if match is None:
        raise InvalidRateLimitError(text)

    value = int(match.group(1))
    if value <= 0:
        raise InvalidRateLimitError(text, f"rate limit value must be positive, got {value}")

    return RateLimit(value=value, unit=match.group(2))
