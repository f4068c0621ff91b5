"""
Response persistence.

- metadata.py: front-matter format/parse and field encodings
- hash.py: model name -> output directory fingerprint
- writer.py: output layout and atomic writes
- rating.py: viewer-side rating updates
- loader.py: viewer-side loading (import tuna.response.loader directly;
  it depends on tuna.plan, which depends on this package)
"""

from .metadata import (
    Rating,
    ResponseMetadata,
    format_duration,
    format_response,
    format_tokens,
    parse_duration,
    parse_response,
    parse_response_text,
    parse_tokens,
)
from .hash import check_model_hashes, model_hash
from .writer import OUTPUT_DIR, ResponseWriter, response_filename, write_atomic
from .rating import save_rating

__all__ = [
    "Rating",
    "ResponseMetadata",
    "format_duration",
    "format_response",
    "format_tokens",
    "parse_duration",
    "parse_response",
    "parse_response_text",
    "parse_tokens",
    "check_model_hashes",
    "model_hash",
    "OUTPUT_DIR",
    "ResponseWriter",
    "response_filename",
    "write_atomic",
    "save_rating",
]
