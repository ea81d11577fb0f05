"""Tests for change-set resolution."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from skynet_review.errors import DiffFailed, InvalidRef, NotARepository
from skynet_review.git.changes import ChangeSetResolver, is_within_root
from skynet_review.git.models import DiffKind, DiffTarget


def _completed(stdout: str = "", returncode: int = 0, stderr: str = ""):
    return subprocess.CompletedProcess(
        args=[], returncode=returncode, stdout=stdout, stderr=stderr
    )


def _fake_git(root: Path, diff: subprocess.CompletedProcess) -> MagicMock:
    def run(command, **kwargs):
        if command[1:] == ["rev-parse", "--show-toplevel"]:
            return _completed(f"{root}\n")
        if command[1:] == ["rev-parse", "--is-inside-work-tree"]:
            return _completed("true\n")
        return diff

    return MagicMock(side_effect=run)


class TestDiffTarget:
    def test_descriptions(self):
        assert DiffTarget.working_tree().description == "unstaged changes"
        assert DiffTarget.staged().description == "staged changes"
        assert DiffTarget.commit("main").description == "changes since main"

    def test_commit_requires_reference(self):
        with pytest.raises(ValueError):
            DiffTarget(DiffKind.COMMIT)
        with pytest.raises(ValueError):
            DiffTarget(DiffKind.STAGED, "main")


class TestResolverWithMockedGit:
    @patch("skynet_review.git.changes.subprocess.run")
    def test_invalid_ref_rejected_before_spawning(self, mock_run: MagicMock):
        resolver = ChangeSetResolver()
        with pytest.raises(InvalidRef):
            resolver.resolve(DiffTarget.commit("; rm -rf /"))
        mock_run.assert_not_called()

    @patch("skynet_review.git.changes.subprocess.run")
    def test_flag_like_ref_rejected(self, mock_run: MagicMock):
        with pytest.raises(InvalidRef):
            ChangeSetResolver().resolve(DiffTarget.commit("--output=/etc/passwd"))
        mock_run.assert_not_called()

    def test_git_missing_is_not_a_repository(self):
        with patch(
            "skynet_review.git.changes.subprocess.run",
            side_effect=FileNotFoundError("git"),
        ):
            resolver = ChangeSetResolver()
            assert not resolver.is_git_repository()
            with pytest.raises(NotARepository):
                resolver.resolve(DiffTarget.working_tree())

    def test_outside_repository(self):
        with patch(
            "skynet_review.git.changes.subprocess.run",
            return_value=_completed(returncode=128, stderr="fatal: not a git repository"),
        ):
            with pytest.raises(NotARepository) as exc_info:
                ChangeSetResolver().resolve(DiffTarget.working_tree())
        assert "fatal" not in str(exc_info.value)

    def test_diff_failure_hides_stderr(self, tmp_path: Path):
        fake = _fake_git(
            tmp_path,
            _completed(returncode=128, stderr=f"fatal: bad revision in {tmp_path}/secret"),
        )
        with patch("skynet_review.git.changes.subprocess.run", fake):
            with pytest.raises(DiffFailed) as exc_info:
                ChangeSetResolver().resolve(DiffTarget.commit("nope"))
        message = str(exc_info.value)
        assert "secret" not in message
        assert str(tmp_path) not in message

    @pytest.mark.parametrize(
        ("target", "expected"),
        [
            (DiffTarget.working_tree(), ["diff", "--name-only"]),
            (DiffTarget.staged(), ["diff", "--staged", "--name-only"]),
            (DiffTarget.commit("main"), ["diff", "--name-only", "main", "HEAD", "--"]),
        ],
    )
    def test_diff_arguments(self, tmp_path: Path, target: DiffTarget, expected: list[str]):
        fake = _fake_git(tmp_path, _completed(""))
        with patch("skynet_review.git.changes.subprocess.run", fake):
            ChangeSetResolver().resolve(target)

        command = fake.call_args_list[-1].args[0]
        kwargs = fake.call_args_list[-1].kwargs
        assert command[0] == "git"
        assert command[-len(expected) :] == expected
        assert kwargs["cwd"] == tmp_path
        assert "shell" not in kwargs

    def test_blank_lines_dropped_and_order_kept(self, tmp_path: Path):
        for name in ("b.py", "a.py"):
            (tmp_path / name).write_text("x")
        fake = _fake_git(tmp_path, _completed("b.py\n\n  \na.py\n"))
        with patch("skynet_review.git.changes.subprocess.run", fake):
            change_set = ChangeSetResolver().resolve(DiffTarget.working_tree())

        assert change_set.paths == (tmp_path / "b.py", tmp_path / "a.py")
        assert change_set.repository_root == tmp_path
        assert change_set.description == "unstaged changes"

    def test_surrounding_whitespace_in_names_kept(self, tmp_path: Path):
        (tmp_path / " a.py").write_text("x")
        (tmp_path / "b.py ").write_text("x")
        fake = _fake_git(tmp_path, _completed(" a.py\nb.py \n"))
        with patch("skynet_review.git.changes.subprocess.run", fake):
            change_set = ChangeSetResolver().resolve(DiffTarget.working_tree())

        assert change_set.paths == (tmp_path / " a.py", tmp_path / "b.py ")

    def test_deleted_file_passes_through(self, tmp_path: Path):
        fake = _fake_git(tmp_path, _completed("gone.py\n"))
        with patch("skynet_review.git.changes.subprocess.run", fake):
            change_set = ChangeSetResolver().resolve(DiffTarget.working_tree())
        assert change_set.paths == (tmp_path / "gone.py",)

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlink_escaping_root_excluded(self, tmp_path: Path):
        root = tmp_path / "repo"
        root.mkdir()
        outside = tmp_path / "outside.py"
        outside.write_text("secret = 1\n")
        (root / "leak.py").symlink_to(outside)
        (root / "app.py").write_text("x = 1\n")

        fake = _fake_git(root, _completed("leak.py\napp.py\n"))
        with patch("skynet_review.git.changes.subprocess.run", fake):
            change_set = ChangeSetResolver().resolve(DiffTarget.working_tree())
        assert change_set.paths == (root / "app.py",)

    def test_dotdot_traversal_excluded(self, tmp_path: Path):
        root = tmp_path / "repo"
        root.mkdir()
        (tmp_path / "escape.py").write_text("x")
        fake = _fake_git(root, _completed("../escape.py\n"))
        with patch("skynet_review.git.changes.subprocess.run", fake):
            change_set = ChangeSetResolver().resolve(DiffTarget.working_tree())
        assert change_set.paths == ()


class TestIsWithinRoot:
    def test_child(self, tmp_path: Path):
        child = tmp_path / "a.py"
        child.write_text("x")
        assert is_within_root(child, tmp_path)

    def test_missing_path_passes(self, tmp_path: Path):
        assert is_within_root(tmp_path / "missing.py", tmp_path)

    def test_sibling_rejected(self, tmp_path: Path):
        root = tmp_path / "root"
        root.mkdir()
        sibling = tmp_path / "rootx"
        sibling.mkdir()
        target = sibling / "a.py"
        target.write_text("x")
        assert not is_within_root(target, root)


class TestResolverWithRealGit:
    def _resolved(self, paths) -> list[Path]:
        return [Path(p).resolve() for p in paths]

    def test_is_git_repository(self, git_repo: Path, tmp_path: Path):
        assert ChangeSetResolver(cwd=git_repo).is_git_repository()
        outside = tmp_path / "plain"
        outside.mkdir()
        assert not ChangeSetResolver(cwd=outside).is_git_repository()

    def test_repository_root_from_subdirectory(self, git_repo: Path):
        sub = git_repo / "pkg"
        sub.mkdir()
        root = ChangeSetResolver(cwd=sub).repository_root()
        assert root.resolve() == git_repo.resolve()

    def test_working_tree_changes(self, git_repo: Path):
        (git_repo / "app.py").write_text("print('changed')\n")
        change_set = ChangeSetResolver(cwd=git_repo).resolve(DiffTarget.working_tree())
        assert self._resolved(change_set.paths) == [(git_repo / "app.py").resolve()]

    def test_staged_changes(self, git_repo: Path, git):
        (git_repo / "app.py").write_text("print('staged')\n")
        git(git_repo, "add", "app.py")
        (git_repo / "README.md").write_text("# unstaged\n")

        resolver = ChangeSetResolver(cwd=git_repo)
        staged = resolver.resolve(DiffTarget.staged())
        unstaged = resolver.resolve(DiffTarget.working_tree())
        assert self._resolved(staged.paths) == [(git_repo / "app.py").resolve()]
        assert self._resolved(unstaged.paths) == [(git_repo / "README.md").resolve()]

    def test_commit_changes(self, git_repo: Path, git):
        (git_repo / "new.py").write_text("x = 1\n")
        git(git_repo, "add", "new.py")
        git(git_repo, "commit", "-q", "-m", "second")

        change_set = ChangeSetResolver(cwd=git_repo).resolve(DiffTarget.commit("HEAD~1"))
        assert self._resolved(change_set.paths) == [(git_repo / "new.py").resolve()]
        assert change_set.description == "changes since HEAD~1"

    def test_unknown_commit_fails(self, git_repo: Path):
        with pytest.raises(DiffFailed, match="Verify the reference exists"):
            ChangeSetResolver(cwd=git_repo).resolve(DiffTarget.commit("no-such-branch"))

    def test_deleted_file_listed(self, git_repo: Path):
        (git_repo / "app.py").unlink()
        change_set = ChangeSetResolver(cwd=git_repo).resolve(DiffTarget.working_tree())
        assert [p.name for p in change_set.paths] == ["app.py"]

    def test_not_a_repository(self, tmp_path: Path, git_repo: Path):
        plain = tmp_path / "plain"
        plain.mkdir()
        with pytest.raises(NotARepository):
            ChangeSetResolver(cwd=plain).resolve(DiffTarget.working_tree())
