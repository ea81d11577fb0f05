"""Git data models — diff targets and resolved change sets."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path


class DiffKind(enum.Enum):
    """Which baseline to diff against."""

    WORKING_TREE = "working-tree"
    STAGED = "staged"
    COMMIT = "commit"


@dataclass(frozen=True)
class DiffTarget:
    """A diff baseline. ``reference`` is only set for ``DiffKind.COMMIT``."""

    kind: DiffKind
    reference: str | None = None

    def __post_init__(self) -> None:
        if (self.kind is DiffKind.COMMIT) != (self.reference is not None):
            raise ValueError("reference is required for, and only for, commit targets")

    @classmethod
    def working_tree(cls) -> DiffTarget:
        return cls(DiffKind.WORKING_TREE)

    @classmethod
    def staged(cls) -> DiffTarget:
        return cls(DiffKind.STAGED)

    @classmethod
    def commit(cls, reference: str) -> DiffTarget:
        return cls(DiffKind.COMMIT, reference)

    @property
    def description(self) -> str:
        if self.kind is DiffKind.WORKING_TREE:
            return "unstaged changes"
        if self.kind is DiffKind.STAGED:
            return "staged changes"
        return f"changes since {self.reference}"


@dataclass(frozen=True)
class ChangeSet:
    """Files reported as modified, all confined to ``repository_root``."""

    paths: tuple[Path, ...]
    repository_root: Path
    description: str
