# Purpose: stable fingerprint of an export file set, to skip unchanged re-runs.

from __future__ import annotations
import hashlib
import json
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional


def file_digest(path: Path) -> str:
    h = hashlib.sha1()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1 << 16), b""):
            h.update(chunk)
    return h.hexdigest()


def files_fingerprint(
    paths: Iterable[Path], settings: Optional[Mapping[str, Any]] = None
) -> str:
    """
    Return a short SHA-1 based fingerprint (first 20 hex chars) of the file
    contents. Order- and location-independent: only the bytes count.
    `settings` that change the output (target year, scrubbing) are folded in.
    """
    digests = sorted(file_digest(Path(p)) for p in paths)
    if settings:
        digests.append(json.dumps(dict(settings), sort_keys=True, default=str))
    return hashlib.sha1("\n".join(digests).encode("utf-8")).hexdigest()[:20]
