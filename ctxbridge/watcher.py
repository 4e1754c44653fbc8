#!/usr/bin/env python3
"""
ctxbridge.watcher - Keep the live session current without user action.

Two independent triggers call the same RefreshPipeline.refresh():
  - interval: every N seconds (default 30), unconditionally
  - file change: the project tree is polled for mtime/size changes; each
    change (re)starts a 2 second debounce timer, and refresh runs once the
    tree has been quiet for 2 seconds

.ctx/, VCS metadata and dependency/build directories are ignored.

One watcher per project. The marker file .ctx/watcher.pid holds the pid of
the running watcher and counts only while that process is alive; it is an
advisory lock, not an OS lock. A stale marker (dead pid) is taken over.
"""

import os
import signal
import threading
from pathlib import Path

import psutil

from ctxbridge import console
from ctxbridge.config import CTX_DIR, PID_FILE
from ctxbridge.errors import WatcherAlreadyRunningError
from ctxbridge.live import RefreshPipeline

DEFAULT_INTERVAL = 30.0  # seconds
DEBOUNCE_SECONDS = 2.0
POLL_SECONDS = 1.0

IGNORED_DIRS = {
    CTX_DIR, ".git", ".hg", ".svn",
    "node_modules", "__pycache__", "venv", ".venv", ".env",
    "dist", "build", ".next", "target", ".tox", ".mypy_cache", ".pytest_cache",
}


# ============================================================================
# MARKER
# ============================================================================

class WatcherMarker:
    """The pid file that makes a watcher the only one for its project."""

    def __init__(self, ctx_dir: Path):
        self.path = Path(ctx_dir) / PID_FILE

    def read_pid(self) -> int | None:
        try:
            return int(self.path.read_text(encoding="utf-8").strip())
        except (OSError, ValueError):
            return None

    def running_pid(self) -> int | None:
        """Pid of the live watcher, or None when there is no valid marker."""
        pid = self.read_pid()
        if pid is None or pid <= 0:
            return None
        return pid if psutil.pid_exists(pid) else None

    def is_running(self) -> bool:
        return self.running_pid() is not None

    def acquire(self, pid: int | None = None) -> None:
        """Claim the marker for pid (default: this process).

        Refuses with WatcherAlreadyRunningError, leaving the marker untouched,
        when another live process holds it.
        """
        pid = pid or os.getpid()
        holder = self.running_pid()
        if holder is not None and holder != pid:
            raise WatcherAlreadyRunningError(holder)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(str(pid), encoding="utf-8")

    def release(self, pid: int | None = None) -> bool:
        """Remove the marker if pid (default: this process) still owns it."""
        if self.read_pid() != (pid or os.getpid()):
            return False
        self.path.unlink(missing_ok=True)
        return True


def stop_watcher(ctx_dir: Path, timeout: float = 5.0) -> int | None:
    """Terminate the project's running watcher. Returns its pid, or None if none ran."""
    marker = WatcherMarker(ctx_dir)
    pid = marker.running_pid()
    if pid is None:
        # Stale marker from a killed watcher
        marker.path.unlink(missing_ok=True)
        return None
    try:
        proc = psutil.Process(pid)
        proc.terminate()
        proc.wait(timeout=timeout)
    except psutil.NoSuchProcess:
        pass
    except psutil.TimeoutExpired:
        psutil.Process(pid).kill()
    marker.path.unlink(missing_ok=True)
    return pid


# ============================================================================
# CHANGE DETECTION
# ============================================================================

def snapshot_tree(root: Path, ignored: set[str] = IGNORED_DIRS) -> dict[str, tuple[int, int]]:
    """Map relative file path -> (mtime_ns, size) for every watched file under root."""
    snapshot: dict[str, tuple[int, int]] = {}
    stack = [Path(root)]
    while stack:
        directory = stack.pop()
        try:
            entries = list(os.scandir(directory))
        except OSError:
            continue
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    if entry.name not in ignored:
                        stack.append(Path(entry.path))
                elif entry.is_file(follow_symlinks=False):
                    st = entry.stat(follow_symlinks=False)
                    snapshot[os.path.relpath(entry.path, root)] = (st.st_mtime_ns, st.st_size)
            except OSError:
                continue
    return snapshot


def diff_snapshots(before: dict, after: dict) -> list[str]:
    """Paths added, removed or modified between two snapshots."""
    changed = [p for p, sig in after.items() if before.get(p) != sig]
    changed += [p for p in before if p not in after]
    return sorted(changed)


# ============================================================================
# WATCHER
# ============================================================================

class Watcher:
    """Foreground process that refreshes on a timer and on debounced file changes."""

    def __init__(
        self,
        pipeline: RefreshPipeline,
        interval: float = DEFAULT_INTERVAL,
        watch_files: bool = True,
        debounce: float = DEBOUNCE_SECONDS,
        poll_interval: float = POLL_SECONDS,
    ):
        self.pipeline = pipeline
        self.project_root = pipeline.project_root
        self.interval = interval
        self.watch_files = watch_files
        self.debounce = debounce
        self.poll_interval = poll_interval
        self.refresh_count = 0

        self._stop_event = threading.Event()
        self._timer_lock = threading.Lock()
        self._debounce_timer: threading.Timer | None = None
        self._threads: list[threading.Thread] = []

    # Triggers

    def _refresh(self, trigger: str) -> None:
        try:
            result = self.pipeline.refresh()
        except Exception as e:
            console.debug(f"Refresh ({trigger}) failed: {e}")
            return
        self.refresh_count += 1
        console.debug(
            f"Refreshed ({trigger}): {len(result.session.files_changed)} files, "
            f"{result.resume_count} resume prompts"
        )

    def _interval_loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            self._refresh("interval")

    def _poll_loop(self) -> None:
        previous = snapshot_tree(self.project_root)
        while not self._stop_event.wait(self.poll_interval):
            current = snapshot_tree(self.project_root)
            changed = diff_snapshots(previous, current)
            previous = current
            if changed:
                self.notify_change(changed[0])

    def notify_change(self, path: str | None = None) -> None:
        """Restart the debounce timer; refresh fires after `debounce` seconds of quiet."""
        if self._stop_event.is_set():
            return
        with self._timer_lock:
            if self._debounce_timer is not None:
                self._debounce_timer.cancel()
            if path:
                console.debug(f"File changed: {path}")
            self._debounce_timer = threading.Timer(self.debounce, self._refresh, args=("change",))
            self._debounce_timer.daemon = True
            self._debounce_timer.start()

    # Lifecycle

    def start(self) -> None:
        """Refresh once, then start both triggers in background threads."""
        self._stop_event.clear()
        self._refresh("start")

        loops = [self._interval_loop]
        if self.watch_files:
            loops.append(self._poll_loop)
        for loop in loops:
            thread = threading.Thread(target=loop, name=f"ctx-{loop.__name__.strip('_')}", daemon=True)
            thread.start()
            self._threads.append(thread)

    def stop(self) -> None:
        self._stop_event.set()
        with self._timer_lock:
            if self._debounce_timer is not None:
                self._debounce_timer.cancel()
                self._debounce_timer = None
        for thread in self._threads:
            if thread is not threading.current_thread():
                thread.join(timeout=5)
        self._threads = []

    def is_running(self) -> bool:
        return bool(self._threads) and not self._stop_event.is_set()

    def run(self, marker: WatcherMarker | None = None) -> None:
        """Block until SIGINT/SIGTERM or stop(); the marker is released on the way out."""
        if threading.current_thread() is threading.main_thread():
            for sig in (signal.SIGINT, signal.SIGTERM):
                signal.signal(sig, lambda signum, frame: self._stop_event.set())
        try:
            self.start()
            self._stop_event.wait()
        finally:
            if marker is not None:
                marker.release()
            self.stop()
