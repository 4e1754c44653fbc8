"""
ctxbridge.errors - Exception types raised to command callers.

Probe failures never surface as exceptions (see ProbeResult.errors) and
budget overflow is a flag on CompiledOutput, so only the conditions that
stop a command, or that must be isolated per unit of work, live here.
"""


class CtxError(Exception):
    """Base class for user-facing ctxbridge errors."""


class NotInitializedError(CtxError):
    """No .ctx/ data root between the working directory and the filesystem root."""

    def __init__(self, start: str | None = None):
        where = f" (searched upward from {start})" if start else ""
        super().__init__(f"Not in a ctx project{where}. Run `ctx init` first.")


class WatcherAlreadyRunningError(CtxError):
    """A live watcher already holds the marker file for this project."""

    def __init__(self, pid: int):
        self.pid = pid
        super().__init__(f"A watcher is already running for this project (pid {pid}).")


class HookTargetMissingError(CtxError):
    """Git hooks were requested outside a git working tree."""

    def __init__(self, cwd: str | None = None):
        super().__init__(f"Not a git repository{f': {cwd}' if cwd else ''}. Git hooks require a git repo.")


class UnknownToolError(CtxError):
    """A tool name that no registered adapter answers to."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f'Unknown tool: "{name}". Run `ctx tools list` to see supported tools.')


class AdapterFailure(CtxError):
    """One tool's compilation or generation failed during a multi-tool run.

    Collected into results rather than raised, so sibling tools still run.
    """

    def __init__(self, tool: str, cause: BaseException):
        self.tool = tool
        self.cause = cause
        super().__init__(f"{tool}: {cause}")
