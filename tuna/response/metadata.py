"""
Response file format: optional YAML front matter followed by the response text.

    ---
    provider: https://openrouter.ai/api/v1
    model: anthropic/claude-sonnet-4
    duration: 2.45s
    input: 1250t
    output: 380t
    executed_at: '2026-01-05T10:15:00.123456+00:00'
    rating: null
    rated_at: null
    ---

    <response text>

Execution fields are written by `tuna exec`; rating fields belong to the
viewer. Tokens and durations use display units so the file reads well by hand.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml


class Rating(str, Enum):
    NONE = "none"
    GOOD = "good"
    BAD = "bad"


@dataclass
class ResponseMetadata:
    # Execution metadata (set by tuna exec)
    provider: str = ""
    model: str = ""
    duration: float = 0.0          # Seconds
    input_tokens: int = 0
    output_tokens: int = 0
    executed_at: Optional[datetime] = None

    # Rating metadata (set by the viewer)
    rating: Rating = Rating.NONE
    rated_at: Optional[datetime] = None

    def is_empty(self) -> bool:
        return (
            not self.has_execution_metadata()
            and self.rating == Rating.NONE
            and self.rated_at is None
        )

    def has_execution_metadata(self) -> bool:
        return bool(
            self.provider or self.model or self.duration > 0
            or self.input_tokens > 0 or self.output_tokens > 0
            or self.executed_at is not None
        )

    def to_yaml_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.provider:
            data["provider"] = self.provider
        if self.model:
            data["model"] = self.model
        if self.duration > 0:
            data["duration"] = format_duration(self.duration)
        if self.input_tokens > 0:
            data["input"] = format_tokens(self.input_tokens)
        if self.output_tokens > 0:
            data["output"] = format_tokens(self.output_tokens)
        if self.executed_at is not None:
            data["executed_at"] = self.executed_at.isoformat()
        data["rating"] = None if self.rating == Rating.NONE else self.rating.value
        data["rated_at"] = self.rated_at.isoformat() if self.rated_at is not None else None
        return data

    @classmethod
    def from_yaml_dict(cls, data: Dict[str, Any]) -> "ResponseMetadata":
        """
        Decode a front-matter mapping.

        Raises:
            ValueError: A field cannot be decoded (bad duration, rating, timestamp)
        """
        return cls(
            provider=_as_str(data.get("provider")),
            model=_as_str(data.get("model")),
            duration=parse_duration(data.get("duration")),
            input_tokens=parse_tokens(data.get("input")),
            output_tokens=parse_tokens(data.get("output")),
            executed_at=_as_datetime(data.get("executed_at")),
            rating=_as_rating(data.get("rating")),
            rated_at=_as_datetime(data.get("rated_at")),
        )


# ===== Field encodings =====

def format_tokens(count: int) -> str:
    return f"{count}t"


def parse_tokens(value: Any) -> int:
    """Parse "1250t" (or a bare integer). Unparseable values count as 0."""
    if value is None:
        return 0
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.endswith("t"):
        text = text[:-1]
    try:
        return int(text)
    except ValueError:
        return 0


def format_duration(seconds: float) -> str:
    """450ms below one second (truncated), 2.45s from one second up."""
    if seconds < 1:
        return f"{int(seconds * 1000)}ms"
    return f"{seconds:.2f}s"


_DURATION_RE = re.compile(r'([0-9]+(?:\.[0-9]+)?)(ms|s|m|h)')
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    if isinstance(value, bool):
        raise ValueError(f"invalid duration {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    match = _DURATION_RE.fullmatch(str(value).strip())
    if match is None:
        raise ValueError(f"invalid duration {value!r}")
    number, unit = match.groups()
    if unit == "ms":
        return float(number) / 1000
    return float(number) * _DURATION_UNITS[unit]


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise ValueError(f"expected a string, got {type(value).__name__}")
    return str(value)


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError as e:
        raise ValueError(f"invalid timestamp {value!r}") from e


def _as_rating(value: Any) -> Rating:
    if value is None or value == "":
        return Rating.NONE
    return Rating(str(value).lower())


# ===== Front matter =====

_FRONT_MATTER_RE = re.compile(r'^---\n(.+?)\n---\n', re.DOTALL)


def format_response(metadata: Optional[ResponseMetadata], content: str) -> str:
    """
    Combine metadata and content into the response file format.

    Empty metadata never produces a front-matter block; the content is
    returned unchanged.
    """
    if metadata is None or metadata.is_empty():
        return content

    front_matter = yaml.safe_dump(
        metadata.to_yaml_dict(),
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
    )
    return "---\n" + front_matter + "---\n\n" + content.lstrip("\n")


def parse_response_text(text: str) -> Tuple[ResponseMetadata, str]:
    """
    Split a response file into metadata and content.

    Malformed front matter degrades to empty metadata with the whole text
    returned verbatim as content.
    """
    match = _FRONT_MATTER_RE.match(text)
    if match is None:
        return ResponseMetadata(), text

    try:
        data = yaml.safe_load(match.group(1))
        if not isinstance(data, dict):
            raise ValueError("front matter is not a mapping")
        metadata = ResponseMetadata.from_yaml_dict(data)
    except (yaml.YAMLError, ValueError, TypeError):
        return ResponseMetadata(), text

    return metadata, text[match.end():].lstrip("\n")


def parse_response(path: Path) -> Tuple[ResponseMetadata, str]:
    """Read a response file. OSError propagates; malformed front matter does not."""
    text = Path(path).read_text(encoding="utf-8")
    return parse_response_text(text)
