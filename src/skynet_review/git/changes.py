"""Resolve a diff target into a change set by shelling out to ``git``.

Arguments are always passed as a list, never through a shell, and git's
stderr is only ever logged at debug level: the user sees generic messages.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from skynet_review.errors import DiffFailed, NotARepository
from skynet_review.git.models import ChangeSet, DiffKind, DiffTarget
from skynet_review.git.refs import validate_ref

logger = logging.getLogger(__name__)

# Seconds before a hung git invocation is abandoned.
_GIT_TIMEOUT = 30


class ChangeSetResolver:
    """Lists files changed relative to a :class:`DiffTarget`.

    ``cwd`` is where repository discovery starts (defaults to the process
    working directory); all diffs then run from the repository root.
    """

    def __init__(self, cwd: str | Path | None = None, git: str = "git") -> None:
        self._cwd = Path(cwd) if cwd is not None else None
        self._git = git

    def is_git_repository(self) -> bool:
        """Whether ``cwd`` is inside a git work tree."""
        try:
            result = self._run(["rev-parse", "--is-inside-work-tree"], self._cwd)
        except NotARepository:
            return False
        return result.returncode == 0 and result.stdout.strip() == "true"

    def repository_root(self) -> Path:
        """Absolute path of the enclosing repository's top level."""
        result = self._run(["rev-parse", "--show-toplevel"], self._cwd)
        root = result.stdout.strip()
        if result.returncode != 0 or not root:
            logger.debug("git rev-parse failed: %s", result.stderr.strip())
            raise NotARepository("Not inside a git repository.")
        return Path(root)

    def resolve(self, target: DiffTarget) -> ChangeSet:
        """Return the files changed for *target*, confined to the repo root."""
        # Validate before anything is spawned
        if target.kind is DiffKind.COMMIT:
            validate_ref(target.reference or "")

        root = self.repository_root()
        result = self._run(_diff_args(target), root)
        if result.returncode != 0:
            logger.debug(
                "git diff exited %d: %s", result.returncode, result.stderr.strip()
            )
            raise DiffFailed("Git diff failed. Verify the reference exists.")

        paths = [
            root / line
            for line in result.stdout.splitlines()
            if line.strip()
        ]
        confined = tuple(p for p in paths if is_within_root(p, root))
        if len(confined) != len(paths):
            logger.debug(
                "Dropped %d path(s) resolving outside %s",
                len(paths) - len(confined),
                root,
            )

        return ChangeSet(
            paths=confined,
            repository_root=root,
            description=target.description,
        )

    def _run(
        self, args: list[str], cwd: Path | None
    ) -> subprocess.CompletedProcess[str]:
        command = [self._git, *args]
        logger.debug("Running %s (cwd=%s)", command, cwd or ".")
        try:
            return subprocess.run(
                command,
                cwd=cwd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=_GIT_TIMEOUT,
            )
        except (FileNotFoundError, NotADirectoryError) as exc:
            logger.debug("git unavailable: %s", exc)
            raise NotARepository("git is not installed or not on PATH.") from exc
        except subprocess.TimeoutExpired as exc:
            raise DiffFailed("Git did not respond in time.") from exc


def _diff_args(target: DiffTarget) -> list[str]:
    # quotepath off keeps non-ASCII names unescaped in --name-only output
    base = ["-c", "core.quotepath=off", "diff"]
    if target.kind is DiffKind.WORKING_TREE:
        return [*base, "--name-only"]
    if target.kind is DiffKind.STAGED:
        return [*base, "--staged", "--name-only"]
    return [*base, "--name-only", str(target.reference), "HEAD", "--"]


def is_within_root(path: Path, root: Path) -> bool:
    """Whether *path* canonically lives under *root*.

    Missing paths pass through unchecked: a deleted file is a legitimate diff
    entry and is dropped later by the existence filter. Paths that exist but
    cannot be canonicalized are rejected.
    """
    if not path.exists():
        return True
    try:
        canonical_path = path.resolve(strict=True)
        canonical_root = root.resolve(strict=True)
    except (OSError, RuntimeError):
        return False
    return canonical_path.is_relative_to(canonical_root)
