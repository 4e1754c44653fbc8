#!/usr/bin/env python3
"""
ctxbridge CLI - Keep AI coding tools in sync with one project context

Usage:
    ctx init [--no-hooks] [--no-import]     Initialize .ctx/ for the current project
    ctx save [message] [-d ...] [-n ...]    Save a session snapshot
    ctx resume --tool T                     Generate T's config and copy the resume prompt
    ctx switch T [-m message]               Save, then resume in T
    ctx sync [tools...]                     Write config files for every enabled tool
    ctx status                              Show project, rules, sessions, watcher, hooks
    ctx rules {list,add,delete,validate}    Manage rule documents
    ctx session {list,show,delete}          Manage saved sessions
    ctx watch [--interval N] [--stop]       Keep the live session current
    ctx hooks {install,uninstall,status}    Manage git hooks
    ctx tools {list,detect}                 Show supported / installed tools
    ctx projects {list,remove}              Show every registered project
    ctx auto-refresh                        Refresh the live session (used by git hooks)
    ctx version                             Show version information
"""

import argparse
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

from ctxbridge import console
from ctxbridge.config import CTX_DIR
from ctxbridge.errors import CtxError, UnknownToolError

STARTER_RULE = """# Project Overview

<!-- Edit this file with your project's context -->
<!-- It is synced to every AI coding tool you use -->

## Stack
-

## Key Conventions
-

## Important Files
-
"""


def _require_adapter(name: str):
    from ctxbridge.adapters import get_adapter
    adapter = get_adapter(name)
    if adapter is None:
        raise UnknownToolError(name)
    return adapter


def _split_list(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def _time_since(timestamp: str) -> str:
    try:
        then = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return timestamp or "unknown"
    seconds = int((datetime.now(timezone.utc) - then).total_seconds())
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    if seconds < 604800:
        return f"{seconds // 86400}d ago"
    return then.date().isoformat()


def _show_files(files: dict[Path, str], project_root: Path) -> None:
    from ctxbridge.chars import format_chars
    for path, content in files.items():
        try:
            shown = Path(path).relative_to(project_root)
        except ValueError:
            shown = path
        console.dim(f"  {shown} ({format_chars(len(content))})")


# ============================================================================
# COMMANDS
# ============================================================================

def cmd_init(args):
    """Create .ctx/, install hooks, import existing configs and run a first refresh."""
    from ctxbridge.adapters import get_all_adapters
    from ctxbridge.config import find_ctx_root, init_ctx_dir
    from ctxbridge.gitprobe import is_git_repo
    from ctxbridge.hooks import install_hooks
    from ctxbridge.live import RefreshPipeline
    from ctxbridge.registry import register_project
    from ctxbridge.rules import RuleStore

    cwd = Path.cwd().resolve()
    existing = find_ctx_root(cwd)
    if existing is not None and existing == cwd:
        console.warn(".ctx/ already exists in this directory.")
        return

    ctx_dir = init_ctx_dir(cwd)
    console.success(f"Initialized .ctx/ in {cwd}")

    git = is_git_repo(cwd)
    if git:
        console.info("  Git repo detected: sessions are organized by branch.")
        if not args.no_hooks:
            try:
                installed = install_hooks(cwd)
            except (CtxError, OSError) as e:
                console.dim(f"  Could not install git hooks (non-fatal): {e}")
            else:
                if installed:
                    console.success(f"Installed git hooks: {', '.join(installed)}")
    else:
        console.dim('  Not a git repo: sessions use "main" as their branch.')

    try:
        register_project(cwd)
        console.success("Registered in the global project registry")
    except OSError as e:
        console.debug(f"Registry update failed: {e}")

    rules = RuleStore(ctx_dir)
    if not args.no_import:
        console.header("Importing existing tool configs...")
        imported = 0
        for adapter in get_all_adapters():
            content = adapter.import_existing(cwd)
            if content:
                rules.add(f"imported-{adapter.name}", content)
                console.success(f"Imported rules from {adapter.display_name}")
                imported += 1
        if not imported:
            console.dim("  No existing tool configs found.")

    if not rules.exists("project"):
        path = rules.add("project", STARTER_RULE, priority=1)
        console.success(f"Created starter rule: {path.relative_to(cwd)}")

    result = RefreshPipeline(cwd).refresh()
    console.success(f"Pre-generated {result.resume_count} resume prompts in .ctx/resume-prompts/")
    for failure in result.failures:
        console.warn(f"Resume prompt failed for {failure}")

    console.header("Autonomous features enabled")
    if git and not args.no_hooks:
        console.info("  Git hooks: context refreshes on commit, checkout and merge")
    console.info("  Live session: .ctx/sessions/live.json")
    console.info("  Resume prompts: .ctx/resume-prompts/<tool>.md")
    console.dim("  Optional: run `ctx watch` for continuous background updates.")


def cmd_save(args):
    """Save an immutable session snapshot for the current branch."""
    from ctxbridge.config import get_project_root, read_config
    from ctxbridge.live import RefreshPipeline
    from ctxbridge.session import SessionStore

    root = get_project_root()
    task = args.message or ""
    decisions = list(args.decision or [])
    next_steps = list(args.next or [])

    if not task:
        if args.no_interactive or not sys.stdin.isatty():
            raise CtxError('Task description is required. Use: ctx save "your message"')
        task = input("What are you working on? ").strip()
        if not task:
            raise CtxError("Task description is required.")
        decisions += _split_list(input("Key decisions made (comma-separated, or empty): "))
        next_steps += _split_list(input("Next steps (comma-separated, or empty): "))

    session = SessionStore(root / CTX_DIR).create(
        task=task, tool=args.tool, decisions=decisions, next_steps=next_steps, cwd=root,
    )
    console.success(f"Session saved: {session.id}")
    console.table([
        ("Branch", session.branch or "main"),
        ("Task", session.task),
        ("Files changed", str(len(session.files_changed))),
        ("Diff", session.diff_summary or "none"),
    ])

    if read_config(root / CTX_DIR).auto_save:
        RefreshPipeline(root).refresh(task=task, decisions=decisions, next_steps=next_steps)


def _resume_into(adapter, session, rules, root: Path, dry_run: bool, clipboard: bool):
    from ctxbridge.adapters import write_outputs
    from ctxbridge.clipboard import copy_to_clipboard
    from ctxbridge.compiler import compile_context

    files = adapter.generate(rules, session, root)
    if dry_run:
        console.header(f"Dry run: would generate for {adapter.display_name}")
        _show_files(files, root)
        return None

    write_outputs(files)
    console.success(f"Generated config for {adapter.display_name}")
    _show_files(files, root)

    if session is None:
        return None
    compiled = compile_context(session, rules, adapter.char_budget,
                               compress=adapter.compress, tool_name=adapter.name)
    if compiled.budget_overflow:
        console.warn(f"Session alone exceeds the {adapter.display_name} budget; output is over the limit.")
    if clipboard and copy_to_clipboard(compiled.resume_prompt):
        console.success(f"Resume prompt copied to clipboard: paste it into {adapter.display_name}")
    else:
        if clipboard:
            console.warn("Could not copy to clipboard. Resume prompt:")
        print("\n---\n" + compiled.resume_prompt + "\n---\n")
    return compiled


def cmd_resume(args):
    """Generate one tool's config from rules + the latest session."""
    from ctxbridge.config import get_project_root
    from ctxbridge.gitprobe import get_branch
    from ctxbridge.rules import RuleStore
    from ctxbridge.session import SessionStore

    adapter = _require_adapter(args.tool)
    root = get_project_root()
    store = SessionStore(root / CTX_DIR)
    if args.session:
        session = store.get(args.session)
        if session is None:
            raise CtxError(f"Session not found: {args.session}")
    else:
        session = store.get_latest(get_branch(root))
    if session is None:
        console.warn("No saved session found. Run `ctx save` first.")
        console.dim("Generating config from rules only...")

    _resume_into(adapter, session, RuleStore(root / CTX_DIR).read(), root,
                 dry_run=args.dry_run, clipboard=not args.no_clipboard)


def cmd_switch(args):
    """Save a session and resume it in another tool in one step."""
    from ctxbridge.config import get_project_root
    from ctxbridge.gitprobe import get_branch
    from ctxbridge.live import RefreshPipeline
    from ctxbridge.registry import touch_project
    from ctxbridge.rules import RuleStore
    from ctxbridge.session import SessionStore

    adapter = _require_adapter(args.tool)
    root = get_project_root()
    task = args.message or f"Continuing work on {get_branch(root) or 'main'}"

    session = SessionStore(root / CTX_DIR).create(task=task, tool=f"switching-to-{adapter.name}", cwd=root)
    console.success(f"Session saved: {session.id}")

    compiled = _resume_into(adapter, session, RuleStore(root / CTX_DIR).read(), root,
                            dry_run=args.dry_run, clipboard=not args.no_clipboard)
    if compiled is None:
        return

    console.header(f"Ready to switch to {adapter.display_name}")
    console.table([
        ("Session", session.id),
        ("Branch", session.branch or "main"),
        ("Rules included", f"{compiled.rules_included} ({compiled.total_characters:,} chars)"),
    ])
    RefreshPipeline(root).refresh(task=task)
    touch_project(root, task)


def cmd_sync(args):
    """Write config files for every enabled (or listed) tool."""
    from ctxbridge.adapters import get_adapter, write_outputs
    from ctxbridge.chars import format_chars
    from ctxbridge.config import get_project_root, read_config
    from ctxbridge.errors import AdapterFailure
    from ctxbridge.gitprobe import get_branch
    from ctxbridge.rules import RuleStore
    from ctxbridge.session import SessionStore

    root = get_project_root()
    ctx_dir = root / CTX_DIR
    rules = RuleStore(ctx_dir).read()
    session = SessionStore(ctx_dir).get_latest(get_branch(root)) if args.include_session else None

    adapters = []
    for name in args.tools or read_config(ctx_dir).enabled_tools:
        adapter = get_adapter(name)
        if adapter is None:
            console.warn(f"Skipping unknown tool: {name}")
        else:
            adapters.append(adapter)
    if not adapters:
        console.warn("No tools to sync. Check enabled_tools in .ctx/config.json.")
        return

    console.header(f"Syncing rules to {len(adapters)} tool(s)")
    if not rules:
        console.warn("No rules found in .ctx/rules/. Add some with `ctx rules add`.")

    total_files = 0
    failures = []
    for adapter in adapters:
        try:
            files = adapter.generate(rules, session, root)
            size = format_chars(sum(len(c) for c in files.values()))
            if args.dry_run:
                console.info(f"  {adapter.display_name}: {len(files)} file(s), {size}")
                _show_files(files, root)
            else:
                write_outputs(files)
                console.success(f"{adapter.display_name}: {len(files)} file(s) written ({size})")
            total_files += len(files)
        except Exception as e:
            failures.append(AdapterFailure(adapter.name, e))
            console.error(f"Failed to sync {adapter.display_name}: {e}")

    verb = "would be written" if args.dry_run else "written"
    console.info(f"\n{total_files} file(s) {verb} across {len(adapters) - len(failures)} tool(s).")
    if failures and len(failures) == len(adapters):
        raise CtxError("Every tool failed to sync.")


def cmd_status(args):
    """Show git, config, rules, sessions, live session, watcher and hook state."""
    from ctxbridge.adapters import get_tool_budgets
    from ctxbridge.chars import format_chars
    from ctxbridge.config import get_project_root, read_config
    from ctxbridge.gitprobe import get_branch, get_head_hash, is_git_repo
    from ctxbridge.hooks import check_hooks
    from ctxbridge.live import LiveSessionStore
    from ctxbridge.rules import RuleStore
    from ctxbridge.session import SessionStore
    from ctxbridge.watcher import WatcherMarker

    root = get_project_root()
    ctx_dir = root / CTX_DIR
    config = read_config(ctx_dir)
    git = is_git_repo(root)
    branch = get_branch(root)

    console.header("Project Status")
    console.table([
        ("Root", str(root)),
        ("Git", f"{branch or 'unknown'} ({get_head_hash(root) or 'no commits'})" if git else "not a git repo"),
        ("Default tool", config.default_tool or "none"),
        ("Enabled tools", ", ".join(config.enabled_tools)),
        ("Auto-save", "on" if config.auto_save else "off"),
        ("Auto-detect", "on" if config.auto_detect else "off"),
    ])

    rules = RuleStore(ctx_dir).read()
    console.header("Rules")
    if not rules:
        console.dim("  No rules defined. Run `ctx rules add` to create one.")
    else:
        for rule in rules:
            console.info(f"  {rule.priority:02d} {rule.name} ({format_chars(rule.char_count)})")
        budgets = {name: b for name, b in get_tool_budgets().items() if name in config.enabled_tools}
        for check in RuleStore.validate_budget(rules, budgets):
            if check.overflow:
                console.warn(f"{check.tool}: {check.display}")
        console.dim(f"  Total: {format_chars(sum(r.char_count for r in rules))}")

    store = SessionStore(ctx_dir)
    latest = store.get_latest(branch)
    console.header("Sessions")
    if latest is None:
        console.dim("  No sessions saved. Run `ctx save` to create one.")
    else:
        console.table([
            ("Latest", latest.id),
            ("Task", latest.task),
            ("Time", latest.timestamp),
            ("Tool", latest.tool or "unknown"),
            ("Files changed", str(len(latest.files_changed))),
        ])
        console.dim(f"  Total sessions: {len(store.list_sessions())}")

    live = LiveSessionStore(ctx_dir).read()
    pid = WatcherMarker(ctx_dir).running_pid()
    hooks = check_hooks(root) if git else None
    console.header("Autonomous")
    console.table([
        ("Live session", f"{live.task} ({_time_since(live.timestamp)})" if live else "none"),
        ("Watcher", f"running (pid {pid})" if pid else "stopped"),
        ("Git hooks", (", ".join(hooks.installed) or "none") if hooks else "n/a"),
    ])


def cmd_rules(args):
    """Manage rule documents."""
    from ctxbridge.adapters import get_tool_budgets
    from ctxbridge.chars import format_chars
    from ctxbridge.config import get_ctx_dir
    from ctxbridge.rules import RuleStore

    store = RuleStore(get_ctx_dir())

    if args.subcommand == "list":
        rules = store.read()
        if not rules:
            console.info("No rules defined. Run `ctx rules add` to create one.")
            return
        console.header("Rules")
        for rule in rules:
            console.info(f"  {rule.priority:02d} {rule.name} ({format_chars(rule.char_count)})")

    elif args.subcommand == "add":
        name = args.name
        if args.file:
            source = Path(args.file)
            content = source.read_text(encoding="utf-8")
            name = name or source.stem
        else:
            if not name:
                raise CtxError("Rule name required. Usage: ctx rules add <name> [--file PATH]")
            content = f"# {name}\n\n<!-- Edit this file with your rules -->\n"
        path = store.add(name, content, priority=args.priority)
        console.success(f"Created rule: {path}")

    elif args.subcommand == "delete":
        if not args.name:
            raise CtxError("Rule name required. Usage: ctx rules delete <name>")
        if not store.delete(args.name):
            raise CtxError(f"Rule not found: {args.name}")
        console.success(f"Deleted rule: {args.name}")

    elif args.subcommand == "validate":
        rules = store.read()
        if not rules:
            console.info("No rules to validate.")
            return
        console.header("Budget Validation")
        overflowing = 0
        for check in RuleStore.validate_budget(rules, get_tool_budgets()):
            if check.overflow:
                overflowing += 1
                console.error(f"{check.tool.ljust(14)} {check.display}")
            else:
                console.success(f"{check.tool.ljust(14)} {check.display}")
        if overflowing:
            console.dim(f"\n  {overflowing} tool(s) will receive truncated rules.")


def cmd_session(args):
    """Manage saved sessions."""
    from ctxbridge.config import get_ctx_dir
    from ctxbridge.session import SessionStore

    store = SessionStore(get_ctx_dir())

    if args.subcommand == "list":
        sessions = store.list_sessions(args.branch)
        if not sessions:
            console.info("No sessions found.")
            return
        console.header(f"Sessions (branch: {args.branch})" if args.branch else "Sessions")
        for s in sessions:
            branch = f" [{s.branch}]" if s.branch else ""
            console.info(f"  {s.id}{branch}: {s.task}")
            console.dim(f"    {s.timestamp} | {len(s.files_changed)} files | {s.tool or 'unknown tool'}")
        console.dim(f"\n  Total: {len(sessions)} session(s)")
        return

    if not args.session_id:
        raise CtxError(f"Session ID required. Usage: ctx session {args.subcommand} <id>")

    if args.subcommand == "show":
        s = store.get(args.session_id)
        if s is None:
            raise CtxError(f"Session not found: {args.session_id}")
        console.header(f"Session: {s.id}")
        console.table([
            ("Task", s.task),
            ("Branch", s.branch or "main"),
            ("Time", s.timestamp),
            ("Tool", s.tool or "unknown"),
            ("Head", s.head_hash or "n/a"),
            ("Diff", s.diff_summary or "none"),
        ])
        for title, items in (("Decisions", s.decisions), ("Next Steps", s.next_steps),
                             ("Files Changed", s.files_changed), ("Recent Commits", s.recent_commits)):
            if items:
                console.header(title)
                for item in items:
                    console.info(f"  - {item}")

    elif args.subcommand == "delete":
        if not store.delete(args.session_id):
            raise CtxError(f"Session not found: {args.session_id}")
        console.success(f"Deleted session: {args.session_id}")


def cmd_watch(args):
    """Run the watcher in the foreground, or stop a running one."""
    from ctxbridge.config import get_project_root, read_config
    from ctxbridge.live import RefreshPipeline
    from ctxbridge.watcher import Watcher, WatcherMarker, stop_watcher

    root = get_project_root()
    ctx_dir = root / CTX_DIR

    if args.stop:
        pid = stop_watcher(ctx_dir)
        if pid is None:
            console.info("No watcher running for this project.")
        else:
            console.success(f"Stopped watcher (pid {pid})")
        return

    marker = WatcherMarker(ctx_dir)
    marker.acquire()
    interval = args.interval or read_config(ctx_dir).watch_interval

    console.header("Starting context watcher")
    console.info(f"Refreshing every {interval}s" + ("" if args.no_file_watch else " and 2s after file changes"))
    console.info("Resume prompts stay ready in .ctx/resume-prompts/<tool>.md")
    console.dim("Press Ctrl+C to stop.")

    watcher = Watcher(RefreshPipeline(root), interval=float(interval), watch_files=not args.no_file_watch)
    watcher.run(marker)
    console.info(f"\nWatcher stopped after {watcher.refresh_count} refresh(es).")


def cmd_hooks(args):
    """Manage the git hooks that refresh context on commit/checkout/merge."""
    from ctxbridge.hooks import check_hooks, install_hooks, uninstall_hooks

    if args.subcommand == "install":
        installed = install_hooks(Path.cwd())
        if installed:
            console.success(f"Installed git hooks: {', '.join(installed)}")
            console.dim("  Context will refresh on commit, checkout and merge.")
        else:
            console.info("Git hooks already installed.")

    elif args.subcommand == "uninstall":
        removed = uninstall_hooks(Path.cwd())
        if removed:
            console.success(f"Removed git hooks: {', '.join(removed)}")
        else:
            console.info("No ctx git hooks found.")

    elif args.subcommand == "status":
        status = check_hooks(Path.cwd())
        console.header("Git Hooks")
        for name in status.installed:
            console.success(f"{name}: installed")
        for name in status.missing:
            console.dim(f"  {name}: not installed")
        if not status.installed:
            console.dim("\n  Run `ctx hooks install` to refresh context on git events.")


def cmd_tools(args):
    """List supported tools or detect which are installed."""
    from ctxbridge.adapters import get_all_adapters
    from ctxbridge.chars import format_chars
    from ctxbridge.config import CtxConfig, find_ctx_root, read_config

    adapters = get_all_adapters()

    if args.subcommand == "list":
        root = find_ctx_root()
        enabled = (read_config(root / CTX_DIR) if root else CtxConfig()).enabled_tools
        console.header("Supported Tools")
        for adapter in adapters:
            state = "enabled" if adapter.name in enabled else "disabled"
            console.info(f"  {adapter.name.ljust(14)} {adapter.display_name.ljust(22)} "
                         f"{format_chars(adapter.char_budget).ljust(12)} {state}")
        console.dim(f"\n  {len(adapters)} tools supported. Edit .ctx/config.json to enable/disable.")

    elif args.subcommand == "detect":
        console.header("Tool Detection")
        for adapter in adapters:
            if adapter.detect():
                console.success(f"{adapter.name.ljust(14)} {adapter.display_name}: detected")
            else:
                console.dim(f"  {adapter.name.ljust(14)} {adapter.display_name}: not found")


def cmd_projects(args):
    """List or forget projects in the global registry."""
    from ctxbridge.registry import list_projects, unregister_project

    if args.subcommand == "list":
        projects = list_projects()
        if not projects:
            console.info("No projects registered. Run `ctx init` in a project to register it.")
            return
        console.header(f"Projects ({len(projects)})")
        for status in projects:
            p = status.entry
            state = "(missing)" if not status.exists else "(live)" if status.has_live_session else "(idle)"
            branch = f"[{p.branch}] " if p.branch else ""
            console.info(f"  {p.name} {branch}{state}")
            console.dim(f"    {p.path} ({p.storage}){f': {p.task}' if p.task else ''}")
            console.dim(f"    Last active: {_time_since(p.last_active)}")
        live = sum(1 for s in projects if s.has_live_session)
        if live:
            console.info(f"\n  {live} project(s) with live context ready.")

    elif args.subcommand == "remove":
        if not args.path:
            raise CtxError("Project path required. Usage: ctx projects remove <path>")
        if not unregister_project(args.path):
            raise CtxError(f"Project not found in registry: {args.path}")
        console.success(f"Removed project: {args.path}")


def cmd_auto_refresh(args):
    """Refresh the live session and resume prompts. Silent no-op outside a ctx project."""
    from ctxbridge.config import find_ctx_root
    from ctxbridge.live import RefreshPipeline
    from ctxbridge.registry import touch_project

    root = find_ctx_root()
    if root is None:
        console.debug("auto-refresh: no .ctx/ found, nothing to do")
        return

    result = RefreshPipeline(root).refresh()
    for failure in result.failures:
        console.debug(f"Resume prompt failed for {failure}")
    try:
        touch_project(root)
    except OSError as e:
        console.debug(f"Registry update failed: {e}")
    console.success(f"Live session refreshed ({result.resume_count} resume prompts)")


def cmd_version(args):
    """Show version information."""
    import platform

    import psutil

    from ctxbridge import __version__
    from ctxbridge.adapters import get_adapter_names

    print(f"ctxbridge version {__version__}")
    print(f"  Python: {platform.python_version()}")
    print(f"  psutil: {psutil.__version__}")
    print(f"  Adapters: {', '.join(get_adapter_names())}")


# ============================================================================
# ENTRY POINT
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    # Verbosity flags are accepted before or after the command (git hooks
    # run `ctx auto-refresh --quiet`).
    common = argparse.ArgumentParser(add_help=False)
    verbosity = common.add_mutually_exclusive_group()
    verbosity.add_argument("-q", "--quiet", action="store_true", default=argparse.SUPPRESS,
                           help="Only print errors")
    verbosity.add_argument("-v", "--verbose", action="store_true", default=argparse.SUPPRESS,
                           help="Print background diagnostics")

    parser = argparse.ArgumentParser(
        prog="ctx",
        description="Keep your AI coding tools in sync with one project context",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        parents=[common],
        epilog="""
Examples:
  ctx init                       Initialize for the current project
  ctx save "Add JWT auth" -d "RS256 signing"
  ctx switch cursor              Save and hand over to Cursor
  ctx sync                       Write config files for all enabled tools
  ctx watch                      Keep resume prompts current
        """
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    def add(name, help_text):
        return subparsers.add_parser(name, help=help_text, parents=[common])

    # init command
    init_parser = add("init", "Initialize .ctx/ for the current project")
    init_parser.add_argument("--no-hooks", action="store_true", help="Do not install git hooks")
    init_parser.add_argument("--no-import", action="store_true", help="Do not import existing tool configs")

    # save command
    save_parser = add("save", "Save a session snapshot")
    save_parser.add_argument("message", nargs="?", help="What you are working on")
    save_parser.add_argument("-d", "--decision", action="append", help="A decision made (repeatable)")
    save_parser.add_argument("-n", "--next", action="append", help="A next step (repeatable)")
    save_parser.add_argument("-t", "--tool", help="Tool the session was saved from")
    save_parser.add_argument("--no-interactive", action="store_true", help="Never prompt for missing fields")

    # resume command
    resume_parser = add("resume", "Generate a tool's config and copy the resume prompt")
    resume_parser.add_argument("--tool", "-t", required=True, help="Target tool")
    resume_parser.add_argument("--session", help="Session id (default: latest on this branch)")
    resume_parser.add_argument("--dry-run", action="store_true", help="Show files without writing")
    resume_parser.add_argument("--no-clipboard", action="store_true", help="Print the prompt instead of copying")

    # switch command
    switch_parser = add("switch", "Save the session and resume in another tool")
    switch_parser.add_argument("tool", help="Target tool")
    switch_parser.add_argument("-m", "--message", help="Task description for the saved session")
    switch_parser.add_argument("--dry-run", action="store_true", help="Show files without writing")
    switch_parser.add_argument("--no-clipboard", action="store_true", help="Print the prompt instead of copying")

    # sync command
    sync_parser = add("sync", "Write config files for every enabled tool")
    sync_parser.add_argument("tools", nargs="*", help="Tools to sync (default: enabled_tools)")
    sync_parser.add_argument("--dry-run", action="store_true", help="Show files without writing")
    sync_parser.add_argument("--include-session", action="store_true", help="Include the latest session")

    # status command
    add("status", "Show project status")

    # rules command
    rules_parser = add("rules", "Manage rule documents")
    rules_parser.add_argument("subcommand", nargs="?", default="list",
                              choices=["list", "add", "delete", "validate"],
                              help="Rules subcommand (default: list)")
    rules_parser.add_argument("name", nargs="?", help="Rule name (for add/delete)")
    rules_parser.add_argument("--file", "-f", help="Read rule content from a file (for add)")
    rules_parser.add_argument("--priority", "-p", type=int, help="Priority, lower loads first (for add)")

    # session command
    session_parser = add("session", "Manage saved sessions")
    session_parser.add_argument("subcommand", nargs="?", default="list",
                                choices=["list", "show", "delete"],
                                help="Session subcommand (default: list)")
    session_parser.add_argument("session_id", nargs="?", help="Session id (for show/delete)")
    session_parser.add_argument("--branch", "-b", help="Only sessions of this branch (for list)")

    # watch command
    watch_parser = add("watch", "Keep the live session current in the foreground")
    watch_parser.add_argument("--interval", type=int, help="Seconds between refreshes (default: config)")
    watch_parser.add_argument("--no-file-watch", action="store_true", help="Only refresh on the interval")
    watch_parser.add_argument("--stop", action="store_true", help="Stop the running watcher")

    # hooks command
    hooks_parser = add("hooks", "Manage git hooks")
    hooks_parser.add_argument("subcommand", nargs="?", default="status",
                              choices=["install", "uninstall", "status"],
                              help="Hooks subcommand (default: status)")

    # tools command
    tools_parser = add("tools", "Show supported tools")
    tools_parser.add_argument("subcommand", nargs="?", default="list", choices=["list", "detect"],
                              help="Tools subcommand (default: list)")

    # projects command
    projects_parser = add("projects", "Show registered projects")
    projects_parser.add_argument("subcommand", nargs="?", default="list", choices=["list", "remove"],
                                 help="Projects subcommand (default: list)")
    projects_parser.add_argument("path", nargs="?", help="Project path (for remove)")

    # auto-refresh command
    add("auto-refresh", "Refresh the live session (run by git hooks)")

    # version command
    add("version", "Show version information")

    return parser


COMMANDS = {
    "init": cmd_init,
    "save": cmd_save,
    "resume": cmd_resume,
    "switch": cmd_switch,
    "sync": cmd_sync,
    "status": cmd_status,
    "rules": cmd_rules,
    "session": cmd_session,
    "watch": cmd_watch,
    "hooks": cmd_hooks,
    "tools": cmd_tools,
    "projects": cmd_projects,
    "auto-refresh": cmd_auto_refresh,
    "version": cmd_version,
}


def main(argv: list[str] | None = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "quiet", False):
        console.set_level(console.QUIET)
    elif getattr(args, "verbose", False) or os.environ.get("CTX_VERBOSE"):
        console.set_level(console.VERBOSE)
    else:
        console.set_level(console.NORMAL)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    handler = COMMANDS.get(args.command)
    if handler:
        try:
            handler(args)
        except KeyboardInterrupt:
            print("\nAborted.")
            sys.exit(1)
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
