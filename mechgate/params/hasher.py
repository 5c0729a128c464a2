"""Content hashing (SHA-256) for parameter sources and resolved snapshots."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any


class Hasher:
    """SHA-256 hashing for strings, files and JSON-compatible data."""

    @staticmethod
    def hash_string(text: str) -> str:
        """Return the SHA-256 hex digest of *text*."""
        return hashlib.sha256(text.encode("utf-8")).hexdigest()

    @staticmethod
    def hash_file(path: str | Path) -> str:
        """Return the SHA-256 hex digest of the file at *path*."""
        h = hashlib.sha256()
        p = Path(path)
        with p.open("rb") as f:
            while True:
                chunk = f.read(65536)
                if not chunk:
                    break
                h.update(chunk)
        return h.hexdigest()

    @staticmethod
    def hash_data(data: Any) -> str:
        """Return a digest of *data* serialized as canonical JSON.

        Keys are sorted so equal mappings always hash the same.
        """
        text = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
        return Hasher.hash_string(text)
