"""JSON output shared by the HTTP server and the CLI."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def dumps(data: Any, *, indent: int | None = None) -> str:
    """JSON with key order preserved and non-ASCII text kept as is."""
    return json.dumps(data, ensure_ascii=False, indent=indent)


def dump_to_path(path: Path, data: Any) -> None:
    """Write indented JSON through a temporary file so readers never see half a file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(dumps(data, indent=2), encoding="utf-8")
    tmp.replace(path)
