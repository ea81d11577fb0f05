"""Shared test fixtures."""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from skynet_review.client.transport import TransportClient


def _git(repo: Path, *args: str) -> None:
    subprocess.run(
        [
            "git",
            "-c",
            "user.name=Test",
            "-c",
            "user.email=test@example.com",
            "-c",
            "commit.gpgsign=false",
            *args,
        ],
        cwd=repo,
        check=True,
        capture_output=True,
    )


@pytest.fixture
def git() -> Callable[..., None]:
    return _git


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """A repository with one commit containing ``app.py`` and ``README.md``."""
    if shutil.which("git") is None:
        pytest.skip("git not installed")

    repo = tmp_path / "repo"
    repo.mkdir()
    _git(repo, "init", "-q")
    (repo / "app.py").write_text("print('hello')\n")
    (repo / "README.md").write_text("# demo\n")
    _git(repo, "add", ".")
    _git(repo, "commit", "-q", "-m", "initial")
    return repo


@pytest.fixture
def finding_payload() -> dict:
    return {
        "id": "SEC-001",
        "title": "SQL injection",
        "description": "User input reaches a raw query.",
        "severityLevel": 0,
        "filePath": "app.py",
        "lineNumber": 12,
        "codeSnippet": "cursor.execute(f\"SELECT * FROM t WHERE id={uid}\")",
        "remediation": "Use parameterized queries.",
    }


@pytest.fixture
def make_client() -> Callable[..., TransportClient]:
    """Build a client whose requests are served by *handler*."""

    def factory(
        handler: Callable[[httpx.Request], httpx.Response],
        base_url: str = "http://localhost:5000",
        token: str | None = None,
        **kwargs: Any,
    ) -> TransportClient:
        return TransportClient(
            base_url, token=token, transport=httpx.MockTransport(handler), **kwargs
        )

    return factory
