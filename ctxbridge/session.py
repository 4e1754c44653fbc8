#!/usr/bin/env python3
"""
ctxbridge.session - Immutable, timestamped session snapshots.

Each `ctx save` writes one JSON file under sessions/<branch>/. Branch names
containing "/" nest ("feature/auth" -> sessions/feature/auth/). Filenames
start with a UTC timestamp, so within one branch directory lexicographic
order is time order. sessions/live.json belongs to the live session and is
never returned from here.
"""

import json
import uuid
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path

from ctxbridge.config import LIVE_FILE, SESSIONS_DIR, read_config, write_text_atomic
from ctxbridge.gitprobe import GitProbe, ProbeResult

DEFAULT_BRANCH = "main"
SESSION_EXTENSION = ".json"
MAX_WALK_DEPTH = 16  # deepest branch nesting the session walk descends into


@dataclass(frozen=True)
class Session:
    """Point-in-time snapshot of task, decisions, next steps and git state."""
    id: str
    branch: str | None
    timestamp: str                     # ISO-8601, UTC
    tool: str | None
    task: str
    decisions: list[str] = field(default_factory=list)
    next_steps: list[str] = field(default_factory=list)
    files_changed: list[str] = field(default_factory=list)
    diff_summary: str | None = None
    recent_commits: list[str] = field(default_factory=list)
    head_hash: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2) + "\n"

    def with_changes(self, **changes) -> "Session":
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        return cls(
            id=data.get("id", ""),
            branch=data.get("branch"),
            timestamp=data.get("timestamp", ""),
            tool=data.get("tool"),
            task=data.get("task", ""),
            decisions=list(data.get("decisions") or []),
            next_steps=list(data.get("next_steps") or []),
            files_changed=list(data.get("files_changed") or []),
            diff_summary=data.get("diff_summary"),
            recent_commits=list(data.get("recent_commits") or []),
            head_hash=data.get("head_hash"),
        )


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def read_session_file(path: Path) -> Session | None:
    """Parse one session file; unreadable or malformed files read as None."""
    try:
        data = json.loads(path.read_text(encoding="utf-8", errors="replace"))
    except (OSError, json.JSONDecodeError):
        return None
    if not isinstance(data, dict) or not data.get("id"):
        return None
    return Session.from_dict(data)


def capture_git_state(probe: GitProbe, ctx_dir: Path, cwd: Path | str | None = None) -> ProbeResult:
    """Git state a new snapshot records, filtered by the project config.

    The branch is always kept since sessions are filed by branch. With
    auto_detect off nothing else is; session_defaults can drop the diff
    summary and the changed files.
    """
    config = read_config(ctx_dir)
    git = probe.probe(cwd)
    if not config.auto_detect:
        return ProbeResult(branch=git.branch, errors=git.errors)
    defaults = config.session_defaults
    return replace(
        git,
        diff_summary=git.diff_summary if defaults.include_git_diff else None,
        changed_files=git.changed_files if defaults.include_files else [],
    )


def branch_dir_parts(branch: str | None) -> list[str]:
    """Directory components for a branch; empty and ".." parts are dropped."""
    parts = [p for p in (branch or DEFAULT_BRANCH).split("/") if p not in ("", ".", "..")]
    return parts or [DEFAULT_BRANCH]


def collect_session_files(root: Path, max_depth: int = MAX_WALK_DEPTH) -> list[Path]:
    """Every session file under root, as a flat list.

    Explicit breadth-first walk, bounded by max_depth so a symlink loop or a
    pathological tree cannot run away.
    """
    found: list[Path] = []
    pending: list[tuple[Path, int]] = [(root, 0)]
    while pending:
        directory, depth = pending.pop(0)
        try:
            entries = sorted(directory.iterdir())
        except OSError:
            continue
        for entry in entries:
            if entry.is_dir():
                if depth < max_depth:
                    pending.append((entry, depth + 1))
            elif entry.suffix == SESSION_EXTENSION and not (depth == 0 and entry.name == LIVE_FILE):
                found.append(entry)
    return found


class SessionStore:
    """Create and look up session snapshots for one project."""

    def __init__(self, ctx_dir: Path, probe: GitProbe | None = None):
        self.ctx_dir = Path(ctx_dir)
        self.sessions_dir = self.ctx_dir / SESSIONS_DIR
        self.probe = probe or GitProbe()
        self._counter = 0

    def _next_id(self) -> str:
        # Counter orders ids from one store within the same second;
        # the random tail keeps two processes from colliding.
        self._counter += 1
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
        return f"sess_{stamp}_{self._counter:03d}{uuid.uuid4().hex[:4]}"

    def branch_dir(self, branch: str | None) -> Path:
        return self.sessions_dir.joinpath(*branch_dir_parts(branch))

    def create(
        self,
        task: str,
        tool: str | None = None,
        decisions: list[str] | None = None,
        next_steps: list[str] | None = None,
        cwd: Path | str | None = None,
    ) -> Session:
        """Snapshot git state plus the given task and persist it."""
        git = capture_git_state(self.probe, self.ctx_dir, cwd)
        session = Session(
            id=self._next_id(),
            branch=git.branch,
            timestamp=utc_timestamp(),
            tool=tool,
            task=task,
            decisions=list(decisions or []),
            next_steps=list(next_steps or []),
            files_changed=git.changed_files,
            diff_summary=git.diff_summary,
            recent_commits=git.recent_commits,
            head_hash=git.head_hash,
        )
        path = self.branch_dir(git.branch) / f"{session.id}{SESSION_EXTENSION}"
        write_text_atomic(path, session.to_json())
        return session

    def get_latest(self, branch: str | None = None) -> Session | None:
        """Most recent session on branch, or across all branches when branch is None."""
        if not self.sessions_dir.is_dir():
            return None

        if branch:
            directory = self.branch_dir(branch)
            try:
                names = sorted(
                    (p.name for p in directory.iterdir() if p.is_file() and p.suffix == SESSION_EXTENSION),
                    reverse=True,
                )
            except OSError:
                return None
            for name in names:
                session = read_session_file(directory / name)
                if session:
                    return session
            return None

        latest = None
        for path in collect_session_files(self.sessions_dir):
            session = read_session_file(path)
            if session and (latest is None or (session.timestamp, session.id) > (latest.timestamp, latest.id)):
                latest = session
        return latest

    def list_sessions(self, branch: str | None = None) -> list[Session]:
        """Sessions newest first, optionally limited to one branch (and its sub-branches)."""
        root = self.branch_dir(branch) if branch else self.sessions_dir
        sessions = [s for s in map(read_session_file, collect_session_files(root)) if s]
        return sorted(sessions, key=lambda s: (s.timestamp, s.id), reverse=True)

    def get(self, session_id: str) -> Session | None:
        for path in collect_session_files(self.sessions_dir):
            if path.stem == session_id:
                return read_session_file(path)
        return None

    def delete(self, session_id: str) -> bool:
        """Remove one snapshot. Sessions are only ever deleted on request."""
        for path in collect_session_files(self.sessions_dir):
            if path.stem == session_id:
                path.unlink()
                return True
        return False
