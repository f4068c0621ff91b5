import os
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .hash import model_hash
from .metadata import Rating, ResponseMetadata, format_response

OUTPUT_DIR = "Output"
RESPONSE_SUFFIX = "_response.md"


def response_filename(query_id: str) -> str:
    """query_001.md -> query_001_response.md"""
    return Path(query_id).stem + RESPONSE_SUFFIX


class ResponseWriter:
    """
    Saves responses under {assistant_dir}/Output/{plan_id}/{model_hash}/.

    Each write replaces the whole file, metadata block included: a previous
    rating is dropped because it rated text that no longer exists.
    """

    def __init__(self, assistant_dir: Path, plan_id: str):
        self.base_dir = Path(assistant_dir) / OUTPUT_DIR / plan_id

    def response_path(self, model: str, query_id: str) -> Path:
        return self.base_dir / model_hash(model) / response_filename(query_id)

    def write(
        self,
        model: str,
        query_id: str,
        content: str,
        metadata: Optional[ResponseMetadata] = None,
    ) -> Path:
        """
        Write one response.

        Args:
            model: Model name as listed in the plan (selects the directory)
            query_id: Input file name (selects the file name)
            content: Response text
            metadata: Execution metadata; rating fields are ignored and reset

        Returns:
            Path of the written file
        """
        output_file = self.response_path(model, query_id)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        fresh = replace(
            metadata or ResponseMetadata(),
            executed_at=(metadata.executed_at if metadata and metadata.executed_at
                         else datetime.now(timezone.utc)),
            rating=Rating.NONE,
            rated_at=None,
        )

        write_atomic(output_file, format_response(fresh, content))
        return output_file


def write_atomic(path: Path, text: str):
    """Write via a temp file + rename so readers never see a partial file."""
    temp_file = path.with_suffix(path.suffix + '.tmp')
    try:
        with open(temp_file, 'w', encoding='utf-8') as f:
            f.write(text)
        os.replace(temp_file, path)
    except Exception:
        if temp_file.exists():
            temp_file.unlink()
        raise
