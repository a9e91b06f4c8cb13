from __future__ import annotations

import hashlib
import json
import os
import platform
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


def sha256_file(path: str | Path) -> str:
    h = hashlib.sha256()
    with Path(path).open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def sha256_json(payload: Any) -> str:
    text = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=True)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def now_utc_iso() -> str:
    fixed = os.environ.get("GELCOMPARE_FIXED_TIMESTAMP_UTC")
    if fixed:
        return fixed
    return datetime.now(tz=timezone.utc).isoformat()


def input_fingerprints(paths: dict[str, str | Path]) -> dict[str, dict[str, str]]:
    """Resolved path and SHA-256 of each named input file."""
    return {
        name: {"path": str(Path(p).resolve()), "sha256": sha256_file(p)}
        for name, p in paths.items()
    }


def system_metadata() -> dict[str, object]:
    return {
        "timestamp_utc": now_utc_iso(),
        "platform": platform.platform(),
        "machine": platform.machine(),
        "python_version": platform.python_version(),
    }
