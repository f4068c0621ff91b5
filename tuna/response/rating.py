from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from .metadata import Rating, format_response, parse_response
from .writer import write_atomic


def save_rating(
    path: Path,
    rating: Union[Rating, str],
    rated_at: Optional[datetime] = None,
) -> Rating:
    """
    Update the rating fields of a response file.

    Execution metadata and content are preserved as-is. Rating.NONE clears
    both rating and rated_at.

    Returns:
        The rating that was stored
    """
    rating = Rating(rating)
    metadata, content = parse_response(path)

    if rating == Rating.NONE:
        metadata.rating = Rating.NONE
        metadata.rated_at = None
    else:
        metadata.rating = rating
        metadata.rated_at = rated_at or datetime.now(timezone.utc)

    write_atomic(Path(path), format_response(metadata, content))
    return rating
