import hashlib
from typing import Dict, Iterable

from tuna.errors import ModelHashCollisionError

MODEL_HASH_LENGTH = 8


def model_hash(model: str) -> str:
    """Directory-safe fingerprint of a model name: first 8 hex chars of SHA-256."""
    return hashlib.sha256(model.encode("utf-8")).hexdigest()[:MODEL_HASH_LENGTH]


def check_model_hashes(models: Iterable[str]) -> Dict[str, str]:
    """
    Map each distinct model to its hash, failing on collisions.

    Raises:
        ModelHashCollisionError: Two distinct models share a hash
    """
    seen: Dict[str, str] = {}
    hashes: Dict[str, str] = {}
    for model in models:
        if model in hashes:
            continue
        digest = model_hash(model)
        if digest in seen:
            raise ModelHashCollisionError(seen[digest], model, digest)
        seen[digest] = model
        hashes[model] = digest
    return hashes
