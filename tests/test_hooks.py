"""Tests for git hook installation."""

import os
import stat

import pytest
from conftest import git, requires_git

import ctxbridge.hooks as hooks
from ctxbridge.errors import HookTargetMissingError
from ctxbridge.hooks import (
    HOOK_MARKER,
    HOOK_NAMES,
    check_hooks,
    hook_script,
    install_hooks,
    uninstall_hooks,
)


@pytest.fixture
def fake_repo(tmp_path, monkeypatch):
    """A directory that hooks treat as a git root, without needing git."""
    (tmp_path / ".git" / "hooks").mkdir(parents=True)
    monkeypatch.setattr(hooks, "get_git_root", lambda cwd=None: tmp_path)
    return tmp_path


def hook_path(repo, name="post-commit"):
    return repo / ".git" / "hooks" / name


class TestInstall:

    def test_installs_all_hooks(self, fake_repo):
        assert install_hooks(fake_repo) == HOOK_NAMES
        for name in HOOK_NAMES:
            content = hook_path(fake_repo, name).read_text(encoding="utf-8")
            assert content.startswith("#!/bin/sh\n")
            assert "ctx auto-refresh --quiet &" in content

    def test_hooks_are_executable(self, fake_repo):
        install_hooks(fake_repo)
        mode = os.stat(hook_path(fake_repo)).st_mode
        assert mode & stat.S_IXUSR

    def test_install_twice_is_noop(self, fake_repo):
        install_hooks(fake_repo)
        first = {n: hook_path(fake_repo, n).read_text(encoding="utf-8") for n in HOOK_NAMES}

        assert install_hooks(fake_repo) == []
        for name in HOOK_NAMES:
            content = hook_path(fake_repo, name).read_text(encoding="utf-8")
            assert content == first[name]
            assert content.count(HOOK_MARKER) == 2

    def test_appends_to_existing_hook(self, fake_repo):
        hook_path(fake_repo).write_text("#!/bin/sh\nnpm run lint\n\n\n", encoding="utf-8")
        install_hooks(fake_repo)

        content = hook_path(fake_repo).read_text(encoding="utf-8")
        assert content.startswith("#!/bin/sh\nnpm run lint\n")
        assert content.count("#!/bin/sh") == 1
        assert content.endswith(hook_script())

    def test_creates_missing_hooks_dir(self, tmp_path, monkeypatch):
        monkeypatch.setattr(hooks, "get_git_root", lambda cwd=None: tmp_path)
        assert install_hooks(tmp_path) == HOOK_NAMES
        assert hook_path(tmp_path).is_file()

    def test_outside_git_fails(self, tmp_path, monkeypatch):
        monkeypatch.setattr(hooks, "get_git_root", lambda cwd=None: None)
        with pytest.raises(HookTargetMissingError):
            install_hooks(tmp_path)

    def test_non_utf8_hook_preserved(self, fake_repo):
        original = b"#!/bin/sh\n# caf\xe9 latin-1 comment\n./run-my-linter.sh\n"
        hook_path(fake_repo).write_bytes(original)

        assert "post-commit" in install_hooks(fake_repo)
        content = hook_path(fake_repo).read_bytes()
        assert content.startswith(original.rstrip())
        assert b"ctx auto-refresh --quiet &" in content

    def test_unreadable_hook_skipped(self, fake_repo):
        hook_path(fake_repo).mkdir()
        assert install_hooks(fake_repo) == ["post-checkout", "post-merge"]
        assert hook_path(fake_repo).is_dir()


class TestUninstall:

    def test_non_utf8_hook_restored(self, fake_repo):
        original = b"#!/bin/sh\n# caf\xe9 latin-1 comment\n./run-my-linter.sh\n"
        hook_path(fake_repo).write_bytes(original)
        install_hooks(fake_repo)

        assert "post-commit" in uninstall_hooks(fake_repo)
        assert hook_path(fake_repo).read_bytes().strip() == original.strip()

    def test_removes_hook_files_we_created(self, fake_repo):
        install_hooks(fake_repo)
        assert uninstall_hooks(fake_repo) == HOOK_NAMES
        assert not any(hook_path(fake_repo, n).exists() for n in HOOK_NAMES)

    def test_preserves_foreign_content(self, fake_repo):
        original = "#!/bin/sh\nnpm run lint\n"
        hook_path(fake_repo).write_text(original, encoding="utf-8")
        install_hooks(fake_repo)

        assert "post-commit" in uninstall_hooks(fake_repo)
        content = hook_path(fake_repo).read_text(encoding="utf-8")
        assert HOOK_MARKER not in content
        assert "npm run lint" in content
        assert content.strip() == original.strip()

    def test_absent_hooks_skipped(self, fake_repo):
        hook_path(fake_repo, "post-merge").write_text("#!/bin/sh\necho other\n", encoding="utf-8")
        assert uninstall_hooks(fake_repo) == []
        assert hook_path(fake_repo, "post-merge").read_text(encoding="utf-8") == "#!/bin/sh\necho other\n"

    def test_outside_git_is_empty(self, tmp_path, monkeypatch):
        monkeypatch.setattr(hooks, "get_git_root", lambda cwd=None: None)
        assert uninstall_hooks(tmp_path) == []


class TestStatus:

    def test_reports_installed_and_missing(self, fake_repo):
        hook_path(fake_repo, "post-commit").write_text(hook_script(), encoding="utf-8")
        status = check_hooks(fake_repo)
        assert status.installed == ["post-commit"]
        assert status.missing == ["post-checkout", "post-merge"]
        assert not status.complete

    def test_outside_git_all_missing(self, tmp_path, monkeypatch):
        monkeypatch.setattr(hooks, "get_git_root", lambda cwd=None: None)
        assert check_hooks(tmp_path).missing == HOOK_NAMES


@requires_git
class TestRealRepository:

    def test_install_twice_in_git_repo(self, git_repo):
        assert install_hooks(git_repo) == HOOK_NAMES
        assert install_hooks(git_repo) == []
        content = hook_path(git_repo).read_text(encoding="utf-8")
        assert content.count(HOOK_MARKER) == 2
        assert check_hooks(git_repo).complete

    def test_commit_succeeds_with_hooks_installed(self, git_repo):
        install_hooks(git_repo)
        (git_repo / "file.txt").write_text("x", encoding="utf-8")
        git(git_repo, "add", "file.txt")
        git(git_repo, "commit", "-q", "-m", "Commit with hook")
        assert "Commit with hook" in git(git_repo, "log", "--oneline", "-1")
