#!/usr/bin/env python3
"""
ctxbridge.gitprobe - Read-only, best-effort view of the git working tree.

Every query shells out to `git` with a short timeout. Nothing here raises:
a failed query leaves its field absent and records why in
ProbeResult.errors, so callers (and tests) can tell "no changed files"
apart from "git could not be asked".
"""

import subprocess
from dataclasses import dataclass, field
from pathlib import Path

GIT_TIMEOUT = 5  # seconds per git invocation
RECENT_COMMITS = 5


@dataclass
class GitResult:
    """Outcome of one git invocation: stdout on success, error text otherwise."""
    stdout: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_git(args: list[str], cwd: Path | str | None = None, timeout: float = GIT_TIMEOUT) -> GitResult:
    """Run git; failures of any kind come back as GitResult.error, never as exceptions."""
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=str(cwd) if cwd else None,
            capture_output=True, timeout=timeout,
            # Commit messages and paths are not always UTF-8
            encoding="utf-8", errors="replace",
        )
    except subprocess.TimeoutExpired:
        return GitResult(error=f"git {args[0]} timed out after {timeout}s")
    except (FileNotFoundError, NotADirectoryError, PermissionError, OSError) as e:
        return GitResult(error=f"git {args[0]} unavailable: {e}")
    if result.returncode != 0:
        return GitResult(error=result.stderr.strip() or f"git {args[0]} exited {result.returncode}")
    return GitResult(stdout=result.stdout)


# ============================================================================
# SINGLE QUERIES
# ============================================================================

def is_git_repo(cwd: Path | str | None = None) -> bool:
    """Check if cwd is inside a git working tree."""
    return run_git(["rev-parse", "--is-inside-work-tree"], cwd).stdout.strip() == "true"


def get_git_root(cwd: Path | str | None = None) -> Path | None:
    """Top level of the working tree, or None outside git."""
    out = run_git(["rev-parse", "--show-toplevel"], cwd).stdout.strip()
    return Path(out) if out else None


def get_branch(cwd: Path | str | None = None) -> str | None:
    """Current branch name ("HEAD" when detached)."""
    return run_git(["rev-parse", "--abbrev-ref", "HEAD"], cwd).stdout.strip() or None


def get_head_hash(cwd: Path | str | None = None) -> str | None:
    return run_git(["rev-parse", "--short", "HEAD"], cwd).stdout.strip() or None


def _lines(text: str) -> list[str]:
    return [line for line in text.strip().split("\n") if line]


# ============================================================================
# PROBE
# ============================================================================

@dataclass
class ProbeResult:
    """Snapshot of version-control state. Absent fields are None / empty."""
    branch: str | None = None
    diff_summary: str | None = None
    changed_files: list[str] = field(default_factory=list)
    recent_commits: list[str] = field(default_factory=list)
    head_hash: str | None = None
    errors: dict[str, str] = field(default_factory=dict)  # query name -> reason

    @property
    def available(self) -> bool:
        """False when git could not be queried at all."""
        return "branch" not in self.errors


class GitProbe:
    """Query branch, diff summary, changed files, recent commits and HEAD."""

    def __init__(self, timeout: float = GIT_TIMEOUT, commit_count: int = RECENT_COMMITS):
        self.timeout = timeout
        self.commit_count = commit_count

    def _git(self, args: list[str], cwd) -> GitResult:
        return run_git(args, cwd, self.timeout)

    def probe(self, cwd: Path | str | None = None) -> ProbeResult:
        result = ProbeResult()

        branch = self._git(["rev-parse", "--abbrev-ref", "HEAD"], cwd)
        if branch.ok:
            result.branch = branch.stdout.strip() or None
        else:
            result.errors["branch"] = branch.error

        diff = self._git(["diff", "--stat", "--stat-width=80"], cwd)
        if diff.ok:
            # Last line of --stat is the summary: "4 files changed, 127 insertions(+)"
            stat_lines = _lines(diff.stdout)
            result.diff_summary = stat_lines[-1].strip() if stat_lines else None
        else:
            result.errors["diff_summary"] = diff.error

        changed = self._git(["diff", "--name-only", "HEAD"], cwd)
        if changed.ok and changed.stdout.strip():
            result.changed_files = _lines(changed.stdout)
        else:
            # No commits yet: fall back to what is staged
            staged = self._git(["diff", "--name-only", "--cached"], cwd)
            if staged.ok:
                result.changed_files = _lines(staged.stdout)
            elif not changed.ok:
                result.errors["changed_files"] = changed.error

        log = self._git(["log", "--oneline", f"-{self.commit_count}"], cwd)
        if log.ok:
            result.recent_commits = _lines(log.stdout)
        else:
            result.errors["recent_commits"] = log.error

        head = self._git(["rev-parse", "--short", "HEAD"], cwd)
        if head.ok:
            result.head_hash = head.stdout.strip() or None
        else:
            result.errors["head_hash"] = head.error

        return result
