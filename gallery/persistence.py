# gallery/persistence.py
"""
JSON index files shared by the file-backed stores.

Each store keeps a single index file in its own directory:

    store_dir/
        <name>.json       # {"version": "1.0", ...}
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

INDEX_VERSION = "1.0"


class CorruptIndex(ValueError):
    """An index file exists but cannot be read back."""

    def __init__(self, path: Path, reason: Any):
        self.path = path
        super().__init__(f"Corrupt index {path}: {reason}")


def load_index(path: Path) -> Optional[Dict[str, Any]]:
    """
    Load an index file.

    Returns None if the file does not exist. Raises CorruptIndex if it
    exists but is not a JSON object; the file is left as it is.
    """
    if not path.exists():
        return None
    try:
        with open(path) as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CorruptIndex(path, e) from None
    if not isinstance(data, dict):
        raise CorruptIndex(path, "not a JSON object")
    return data


def save_index(path: Path, data: Dict[str, Any]) -> None:
    """Write an index file, replacing the previous one in a single step."""
    data = {"version": INDEX_VERSION, **data}
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
