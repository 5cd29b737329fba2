"""
Pending-plugins utilities
"""

import hashlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Union


def mask_secret(secret: str, length: int = 5) -> str:
    """Return a short SHA-256 hash of a secret for logging."""
    h = hashlib.sha256(str(secret).encode("utf-8")).hexdigest()
    return f"<masked:{h[:length]}>"


def parse_repo_owner(repo: str) -> str:
    """Lower-cased first path segment of an 'owner/name' reference."""
    if not repo:
        return ""
    return repo.strip().split("/")[0].strip().lower()


def write_text_atomic(path: Union[str, Path], text: str) -> None:
    """Write ``text`` via a temp file in the same directory and a single rename.

    Readers never observe a half-written file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def write_json_atomic(path: Union[str, Path], data: Any) -> None:
    write_text_atomic(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")
