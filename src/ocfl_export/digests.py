# src/ocfl_export/digests.py

from pathlib import Path
import hashlib

from .config import CHUNK_SIZE, SUPPORTED_DIGESTS
from .errors import ConfigurationError


def check_algorithm(algorithm: str) -> str:
    """Return the algorithm unchanged, or raise if it is not supported."""
    if algorithm not in SUPPORTED_DIGESTS:
        raise ConfigurationError(
            f"Unknown digest type {algorithm!r}; expected one of {', '.join(SUPPORTED_DIGESTS)}"
        )
    return algorithm


def hash_file(path: Path, algorithm: str) -> str:
    h = hashlib.new(check_algorithm(algorithm))
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()


def hash_bytes(data: bytes, algorithm: str) -> str:
    return hashlib.new(check_algorithm(algorithm), data).hexdigest()
