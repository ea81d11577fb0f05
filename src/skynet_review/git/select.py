"""Narrow a list of paths down to analyzable source files."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path

# Source extensions analyzed when the caller gives no allow-list
DEFAULT_EXTENSIONS = (
    "cs",
    "rs",
    "py",
    "js",
    "ts",
    "jsx",
    "tsx",
    "java",
    "go",
    "rb",
    "php",
    "c",
    "cpp",
    "h",
    "hpp",
)


def select_files(
    paths: Iterable[str | Path],
    allowed_extensions: Sequence[str] | None = None,
) -> list[Path]:
    """Keep paths whose extension is allowed and which still exist.

    Extensions compare case-insensitively and may be given with or without
    the leading dot. An empty allow-list selects nothing; ``None`` means
    :data:`DEFAULT_EXTENSIONS`.
    """
    if allowed_extensions is None:
        allowed_extensions = DEFAULT_EXTENSIONS
    allowed = {_normalize(e) for e in allowed_extensions if _normalize(e)}

    selected: list[Path] = []
    for raw in paths:
        path = Path(raw)
        ext = _normalize(path.suffix)
        if not ext or ext not in allowed:
            continue
        # Files may have been deleted since the diff was taken
        if not path.exists():
            continue
        selected.append(path)
    return selected


def _normalize(ext: str) -> str:
    return ext.strip().lstrip(".").lower()
