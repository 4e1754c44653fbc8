#!/usr/bin/env python3
"""
ctxbridge.registry - Machine-wide list of ctx projects.

~/.ctx-global/projects.json (or $CTX_GLOBAL_DIR/projects.json) records every
project `ctx init` has seen, keyed by absolute path, so `ctx projects list`
can show the branch and task of each one from anywhere.
"""

import json
import os
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path

from ctxbridge.config import CTX_DIR, LIVE_FILE, SESSIONS_DIR, load_json, write_text_atomic
from ctxbridge.gitprobe import get_branch, is_git_repo

GLOBAL_DIR_ENV = "CTX_GLOBAL_DIR"
PROJECTS_FILE = "projects.json"
REGISTRY_VERSION = "0.1.0"


def get_global_dir() -> Path:
    override = os.environ.get(GLOBAL_DIR_ENV)
    return Path(override) if override else Path.home() / ".ctx-global"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass
class ProjectEntry:
    name: str
    path: str
    last_active: str
    branch: str | None = None
    task: str | None = None
    storage: str = "local"  # "git" or "local"

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectEntry":
        return cls(
            name=data.get("name", Path(data.get("path", "")).name),
            path=data.get("path", ""),
            last_active=data.get("last_active", ""),
            branch=data.get("branch"),
            task=data.get("task"),
            storage=data.get("storage", "local"),
        )


@dataclass
class ProjectStatus:
    entry: ProjectEntry
    exists: bool
    has_live_session: bool


def read_registry() -> list[ProjectEntry]:
    data = load_json(get_global_dir() / PROJECTS_FILE, {})
    if not isinstance(data, dict):
        return []
    return [ProjectEntry.from_dict(p) for p in data.get("projects", []) if isinstance(p, dict)]


def write_registry(projects: list[ProjectEntry]) -> None:
    payload = {"version": REGISTRY_VERSION, "projects": [asdict(p) for p in projects]}
    write_text_atomic(get_global_dir() / PROJECTS_FILE, json.dumps(payload, indent=2) + "\n")


def register_project(project_path: Path | str) -> ProjectEntry:
    """Add the project, or refresh its entry if already registered."""
    path = Path(project_path).resolve()
    entry = ProjectEntry(
        name=path.name,
        path=str(path),
        last_active=_now(),
        branch=get_branch(path),
        storage="git" if is_git_repo(path) else "local",
    )
    projects = read_registry()
    for i, existing in enumerate(projects):
        if existing.path == entry.path:
            entry.task = existing.task
            projects[i] = entry
            break
    else:
        projects.append(entry)
    write_registry(projects)
    return entry


def touch_project(project_path: Path | str, task: str | None = None) -> bool:
    """Bump last_active (and the task, if given). False for unregistered projects."""
    path = str(Path(project_path).resolve())
    projects = read_registry()
    for entry in projects:
        if entry.path == path:
            entry.last_active = _now()
            entry.branch = get_branch(path)
            if task:
                entry.task = task
            write_registry(projects)
            return True
    return False


def unregister_project(project_path: Path | str) -> bool:
    path = str(Path(project_path).resolve())
    projects = read_registry()
    kept = [p for p in projects if p.path != path]
    if len(kept) == len(projects):
        return False
    write_registry(kept)
    return True


def list_projects() -> list[ProjectStatus]:
    """Registered projects, most recently active first, with live session details merged in."""
    results = []
    for entry in read_registry():
        root = Path(entry.path)
        exists = root.is_dir()
        live = load_json(root / CTX_DIR / SESSIONS_DIR / LIVE_FILE) if exists else None
        if isinstance(live, dict):
            entry.branch = live.get("branch") or entry.branch
            entry.task = live.get("task") or entry.task
        results.append(ProjectStatus(entry=entry, exists=exists, has_live_session=isinstance(live, dict)))
    results.sort(key=lambda s: s.entry.last_active, reverse=True)
    return results
