"""Local repository provider backed by the ``git`` executable and watchdog.

Each ``LocalRepository`` keeps the last parsed status in ``state`` and
offers the two optional provider capabilities: an awaitable
``force_status_refresh()`` and ``on_did_change()`` subscriptions. Change
notifications come from a watchdog observer on the worktree; the
repository refreshes its own status before notifying listeners, so a
listener always reads fresh state.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from . import exec as exec_util
from . import git, log
from .effects import shorten_reason

ChangeListener = Callable[[], None]
RootsSource = Callable[[], Iterable[Path | str]]

_IGNORED_SEGMENTS = ("/.git/objects/", "/.git/logs/")


@dataclass(frozen=True)
class HeadState:
    name: str = ""
    upstream: str = ""
    ahead: int = 0
    behind: int = 0
    commit: str = ""


@dataclass
class RepositoryState:
    head: HeadState | None = None
    working_tree_changes: tuple[str, ...] = field(default_factory=tuple)
    index_changes: tuple[str, ...] = field(default_factory=tuple)
    merge_changes: tuple[str, ...] = field(default_factory=tuple)


def _is_relevant(path: str) -> bool:
    normalized = path.replace("\\", "/")
    if normalized.endswith(".lock"):
        return False
    return not any(segment in normalized for segment in _IGNORED_SEGMENTS)


class _ChangeHandler(FileSystemEventHandler):
    """Forward relevant filesystem events from the watchdog thread to the loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop, callback: Callable[[], None]) -> None:
        self.loop = loop
        self.callback = callback

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory and event.event_type == "modified":
            return
        if not _is_relevant(str(event.src_path)):
            return
        if self.loop.is_closed():
            return
        try:
            self.loop.call_soon_threadsafe(self.callback)
        except RuntimeError:
            return


class LocalRepository:
    """Repository handle for one local git worktree."""

    def __init__(
        self,
        root_path: Path,
        *,
        git_path: str | None = None,
        runner: exec_util.CommandRunner | None = None,
        observer_factory: Callable[[], object] = Observer,
    ) -> None:
        self.root_path = str(root_path)
        self.state = RepositoryState()
        self._git_path = git_path
        self._runner = runner
        self._observer_factory = observer_factory
        self._observer = None
        self._listeners: list[ChangeListener] = []
        self._tasks: set[asyncio.Task[None]] = set()
        self._refreshing = False
        self._refresh_pending = False
        self._closed = False

    def __repr__(self) -> str:
        return f"LocalRepository({self.root_path!r})"

    def apply_status(self, summary: git.StatusSummary) -> None:
        self.state = RepositoryState(
            head=HeadState(
                name=summary.branch,
                upstream=summary.upstream,
                ahead=summary.ahead,
                behind=summary.behind,
                commit=summary.commit,
            ),
            working_tree_changes=summary.working_tree_changes,
            index_changes=summary.index_changes,
            merge_changes=summary.merge_changes,
        )

    async def force_status_refresh(self) -> None:
        """Re-read status from git off the event loop thread.

        Raises:
            GitStatusError: when git is missing or the command fails.
        """
        summary = await asyncio.to_thread(
            git.read_status,
            Path(self.root_path),
            git_path=self._git_path,
            runner=self._runner,
        )
        if not self._closed:
            self.apply_status(summary)

    def on_did_change(self, listener: ChangeListener) -> Callable[[], None]:
        """Subscribe ``listener``; returns a callable that unsubscribes it."""
        self._listeners.append(listener)
        self._ensure_observer()

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
            if not self._listeners:
                self._stop_observer()

        return unsubscribe

    def _ensure_observer(self) -> None:
        if self._observer is not None or self._closed:
            return
        loop = asyncio.get_running_loop()
        observer = self._observer_factory()
        observer.schedule(_ChangeHandler(loop, self._on_change), self.root_path, recursive=True)
        observer.start()
        self._observer = observer
        log.trace(f"[FS] watching {self.root_path}")

    def _stop_observer(self) -> None:
        observer, self._observer = self._observer, None
        if observer is None:
            return
        try:
            observer.stop()
            observer.join(timeout=2.0)
        except Exception:
            return

    def _on_change(self) -> None:
        if self._closed:
            return
        if self._refreshing:
            self._refresh_pending = True
            return
        task = asyncio.get_running_loop().create_task(self._refresh_and_notify())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _refresh_and_notify(self) -> None:
        self._refreshing = True
        try:
            while True:
                self._refresh_pending = False
                try:
                    await self.force_status_refresh()
                except git.GitStatusError as exc:
                    log.warning(f"[WARN] status refresh failed: {shorten_reason(str(exc))}")
                    return
                if not self._refresh_pending:
                    break
        finally:
            self._refreshing = False
        for listener in list(self._listeners):
            if self._closed:
                return
            listener()

    def close(self) -> None:
        self._closed = True
        self._listeners.clear()
        self._stop_observer()


class LocalProvider:
    """Provider over a live list of local repository roots.

    ``roots`` is either a fixed sequence or a callable re-read on every
    access, so edits to the configured repository list take effect on the
    next polling tick or reconciliation sweep. Roots that no longer exist
    on disk drop out of the list and their handles are closed.
    """

    def __init__(
        self,
        roots: Sequence[Path | str] | RootsSource,
        *,
        git_path: str | None = None,
        runner: exec_util.CommandRunner | None = None,
        observer_factory: Callable[[], object] = Observer,
    ) -> None:
        self._roots = roots if callable(roots) else (lambda: list(roots))
        self._git_path = git_path
        self._runner = runner
        self._observer_factory = observer_factory
        self._handles: dict[str, LocalRepository] = {}

    def _resolve_roots(self) -> list[Path]:
        resolved: list[Path] = []
        for raw in self._roots():
            path = Path(raw).expanduser().resolve()
            if path in resolved or not path.is_dir():
                continue
            resolved.append(path)
        return resolved

    @property
    def repositories(self) -> list[LocalRepository]:
        roots = self._resolve_roots()
        live = {str(root) for root in roots}
        for key in [key for key in self._handles if key not in live]:
            self._handles.pop(key).close()
        handles: list[LocalRepository] = []
        for root in roots:
            key = str(root)
            handle = self._handles.get(key)
            if handle is None:
                handle = LocalRepository(
                    root,
                    git_path=self._git_path,
                    runner=self._runner,
                    observer_factory=self._observer_factory,
                )
                self._handles[key] = handle
            handles.append(handle)
        return handles

    async def refresh_all(self) -> None:
        """Refresh every repository once, logging failures instead of raising."""
        for handle in self.repositories:
            try:
                await handle.force_status_refresh()
            except git.GitStatusError as exc:
                log.warning(f"[WARN] {shorten_reason(str(exc))}")

    def close(self) -> None:
        for handle in self._handles.values():
            handle.close()
        self._handles.clear()
