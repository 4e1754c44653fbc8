"""Pytest configuration and fixtures for ctxbridge tests."""

import shutil
import subprocess
from pathlib import Path

import pytest

from ctxbridge.config import CTX_DIR, init_ctx_dir
from ctxbridge.gitprobe import ProbeResult
from ctxbridge.rules import RuleDocument
from ctxbridge.session import Session

GIT_AVAILABLE = shutil.which("git") is not None
requires_git = pytest.mark.skipif(not GIT_AVAILABLE, reason="git not installed")


class FakeProbe:
    """Stands in for GitProbe: returns a fixed result and counts calls."""

    def __init__(self, **fields):
        fields.setdefault("branch", "feature/auth")
        self.result = ProbeResult(**fields)
        self.calls = 0

    def probe(self, cwd=None):
        self.calls += 1
        return self.result


def git(cwd: Path, *args: str) -> str:
    return subprocess.run(
        ["git", *args], cwd=cwd, check=True, capture_output=True, text=True,
    ).stdout


@pytest.fixture
def fake_probe():
    return FakeProbe(
        diff_summary="2 files changed, 40 insertions(+)",
        changed_files=["src/auth/jwt.ts", "src/middleware/auth.ts"],
        recent_commits=["a1b2c3d Add JWT signing", "d4e5f6a Scaffold auth module"],
        head_hash="a1b2c3d",
    )


@pytest.fixture
def project(tmp_path):
    """An initialized ctx project (not a git repo)."""
    init_ctx_dir(tmp_path)
    return tmp_path


@pytest.fixture
def ctx_dir(project):
    return project / CTX_DIR


@pytest.fixture
def git_repo(tmp_path):
    """A git repository with one commit."""
    if not GIT_AVAILABLE:
        pytest.skip("git not installed")
    git(tmp_path, "init", "-q", "-b", "main")
    git(tmp_path, "config", "user.email", "dev@example.com")
    git(tmp_path, "config", "user.name", "Dev")
    (tmp_path / "README.md").write_text("# demo\n", encoding="utf-8")
    git(tmp_path, "add", "README.md")
    git(tmp_path, "commit", "-q", "-m", "Initial commit")
    return tmp_path


@pytest.fixture
def global_dir(tmp_path, monkeypatch):
    """Point the global project registry at a temp directory."""
    path = tmp_path / "ctx-global"
    monkeypatch.setenv("CTX_GLOBAL_DIR", str(path))
    return path


def make_rule(name: str, content: str, priority: int = 1) -> RuleDocument:
    return RuleDocument(name=name, source_path=Path(f"{priority:02d}-{name}.md"),
                        content=content, priority=priority)


@pytest.fixture
def sample_rules():
    """Two short rules, the shape of a freshly initialized project."""
    project = "# Project\n\nNode.js API with Express, PostgreSQL and Redis cache"
    style = "# Code Style\n\nUse TypeScript strict mode. Prefer async/await over callbacks."
    return [make_rule("project", project, 1), make_rule("code-style", style, 2)]


@pytest.fixture
def jwt_session():
    return Session(
        id="sess_2026-03-01T10-00-00_001abcd",
        branch="feature/auth",
        timestamp="2026-03-01T10:00:00.000Z",
        tool="claude",
        task="Implementing JWT auth middleware",
        decisions=["RS256 over HS256 for key rotation"],
        next_steps=["Add refresh token rotation", "Write middleware tests"],
        files_changed=["src/auth/jwt.ts"],
        diff_summary="1 file changed, 20 insertions(+)",
        recent_commits=["a1b2c3d Add JWT signing"],
        head_hash="a1b2c3d",
    )
