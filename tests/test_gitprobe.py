"""Tests for the git probe and the clipboard helper."""

import subprocess

from conftest import git, requires_git

from ctxbridge import clipboard
from ctxbridge.clipboard import clipboard_commands, copy_to_clipboard
from ctxbridge.gitprobe import GitProbe, get_branch, get_git_root, is_git_repo, run_git


class TestProbeOutsideGit:

    def test_never_raises(self, tmp_path):
        result = GitProbe().probe(tmp_path)
        assert result.branch is None
        assert result.changed_files == []
        assert result.head_hash is None

    def test_missing_directory(self, tmp_path):
        result = GitProbe().probe(tmp_path / "missing")
        assert not result.available
        assert "branch" in result.errors

    def test_git_not_installed(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PATH", "")
        failed = run_git(["status"], tmp_path)
        assert not failed.ok
        assert "unavailable" in failed.error

    def test_timeout_reported(self, tmp_path, monkeypatch):
        def slow(*args, **kwargs):
            raise subprocess.TimeoutExpired(cmd="git", timeout=5)

        monkeypatch.setattr("ctxbridge.gitprobe.subprocess.run", slow)
        result = GitProbe().probe(tmp_path)
        assert "timed out" in result.errors["branch"]
        assert result.recent_commits == []


@requires_git
class TestProbeInRepository:

    def test_clean_repo(self, git_repo):
        result = GitProbe().probe(git_repo)
        assert result.available
        assert result.branch == "main"
        assert result.head_hash
        assert result.recent_commits[0].endswith("Initial commit")
        assert result.changed_files == []

    def test_changes_detected(self, git_repo):
        (git_repo / "README.md").write_text("# demo\n\nmore\n", encoding="utf-8")
        result = GitProbe().probe(git_repo)
        assert result.changed_files == ["README.md"]
        assert "1 file changed" in result.diff_summary

    def test_branch_helpers(self, git_repo):
        git(git_repo, "checkout", "-q", "-b", "feature/auth")
        assert is_git_repo(git_repo)
        assert get_branch(git_repo) == "feature/auth"
        assert get_git_root(git_repo).resolve() == git_repo.resolve()

    def test_non_utf8_log_output(self, git_repo):
        git(git_repo, "config", "i18n.logOutputEncoding", "ISO-8859-1")
        (git_repo / "fix.txt").write_text("x", encoding="utf-8")
        git(git_repo, "add", "fix.txt")
        git(git_repo, "commit", "-q", "-m", "café fix")

        result = GitProbe().probe(git_repo)
        assert "recent_commits" not in result.errors
        assert "caf" in result.recent_commits[0]
        assert result.recent_commits[0].endswith("fix")

    def test_commit_count(self, git_repo):
        for i in range(3):
            (git_repo / f"f{i}.txt").write_text(str(i), encoding="utf-8")
            git(git_repo, "add", ".")
            git(git_repo, "commit", "-q", "-m", f"Commit {i}")
        assert len(GitProbe(commit_count=2).probe(git_repo).recent_commits) == 2


class TestClipboard:

    def test_platform_commands(self):
        assert clipboard_commands("darwin") == [["pbcopy"]]
        assert clipboard_commands("linux")[0][0] == "xclip"
        assert clipboard_commands("win32") == [["clip"]]
        assert clipboard_commands("sunos5") == []

    def test_falls_back_to_next_command(self, monkeypatch):
        tried = []

        def fake_run(command, **kwargs):
            tried.append(command[0])
            if command[0] == "xclip":
                raise FileNotFoundError(command[0])
            return subprocess.CompletedProcess(command, 0)

        monkeypatch.setattr(clipboard.subprocess, "run", fake_run)
        assert copy_to_clipboard("prompt", platform="linux") is True
        assert tried == ["xclip", "xsel"]

    def test_no_command_available(self, monkeypatch):
        monkeypatch.setattr(clipboard.subprocess, "run",
                            lambda command, **kwargs: subprocess.CompletedProcess(command, 1))
        assert copy_to_clipboard("prompt", platform="linux") is False
