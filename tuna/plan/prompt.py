from pathlib import Path
from typing import Iterable, List

from tuna.errors import PromptError

SYSTEM_PROMPT_DIR = "System prompt"
INPUT_DIR = "Input"
DEFAULT_EXTENSIONS = (".txt", ".md")


def list_files(
    directory: Path,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    ignore_hidden: bool = True,
) -> List[str]:
    """
    File names (not paths) in a directory, filtered by extension and sorted.

    Raises:
        FileNotFoundError: Directory does not exist
    """
    allowed = {ext.lower() for ext in extensions}
    files = []
    for entry in Path(directory).iterdir():
        if not entry.is_file():
            continue
        if ignore_hidden and entry.name.startswith("."):
            continue
        if entry.suffix.lower() not in allowed:
            continue
        files.append(entry.name)
    return sorted(files)


def compile_system_prompt(assistant_dir: Path) -> str:
    """
    Concatenate the fragments in `System prompt/`.

    Each fragment is prefixed with a "--- <filename> ---" delimiter and
    newline-terminated; fragments are separated by a blank line.

    Raises:
        PromptError: Directory missing, empty, or a fragment unreadable
    """
    prompt_dir = Path(assistant_dir) / SYSTEM_PROMPT_DIR

    try:
        files = list_files(prompt_dir)
    except FileNotFoundError:
        raise PromptError(f"system prompt directory not found: {prompt_dir}") from None
    except OSError as e:
        raise PromptError(f"failed to read system prompt directory: {e}") from e

    if not files:
        raise PromptError(f"system prompt directory is empty: {prompt_dir}")

    parts = []
    for filename in files:
        try:
            content = (prompt_dir / filename).read_text(encoding="utf-8")
        except OSError as e:
            raise PromptError(f"failed to read {filename}: {e}") from e

        if content and not content.endswith("\n"):
            content += "\n"
        parts.append(f"--- {filename} ---\n{content}")

    return "\n".join(parts)
