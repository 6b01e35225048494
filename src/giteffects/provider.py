"""Repository provider contract and the capability-checked handle adapter.

Providers hand out repository handles of varying shape: a local git
provider, a test double built from ``SimpleNamespace``, or a bridge to an
editor's git API. ``RepoAdapter`` is the only place that probes a handle
for optional members, so the rest of the package reads one normalized
surface and never branches on missing attributes.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Mapping, Sequence, Sized
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from .paths import is_path_inside

ChangeListener = Callable[[], None]


@runtime_checkable
class RepositoryProvider(Protocol):
    """Anything that exposes the live list of repository handles."""

    @property
    def repositories(self) -> Sequence[object]: ...


class Disposable(Protocol):
    def dispose(self) -> None: ...


def _member(obj: object, *names: str) -> Any:
    if obj is None:
        return None
    for name in names:
        if isinstance(obj, Mapping):
            if name in obj:
                return obj[name]
            continue
        value = getattr(obj, name, None)
        if value is not None:
            return value
    return None


def _as_count(value: object) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value) if value > 0 else 0
    if isinstance(value, str):
        try:
            parsed = int(value.strip())
        except ValueError:
            return 0
        return parsed if parsed > 0 else 0
    return 0


def _as_text(value: object) -> str:
    if isinstance(value, str):
        return value
    return ""


def _collection_size(value: object) -> int:
    if isinstance(value, Sized) and not isinstance(value, (str, bytes)):
        return len(value)
    return 0


def dispose_quietly(resource: object) -> None:
    """Tear down a listener/timer-like resource, swallowing any error.

    Accepts objects with ``dispose()``, ``cancel()`` or ``close()``, or a
    plain callable.
    """
    if resource is None:
        return
    try:
        for name in ("dispose", "cancel", "close"):
            method = getattr(resource, name, None)
            if callable(method):
                method()
                return
        if callable(resource):
            resource()
    except Exception:
        return


@dataclass(frozen=True)
class _CallbackDisposable:
    resource: object

    def dispose(self) -> None:
        dispose_quietly(self.resource)


class RepoAdapter:
    """Normalize one duck-typed repository handle.

    Example:
        >>> from types import SimpleNamespace
        >>> handle = SimpleNamespace(root_path="/repo", state=None)
        >>> adapter = RepoAdapter(handle)
        >>> adapter.key, adapter.ahead, adapter.commit
        ('/repo', 0, '')
    """

    def __init__(self, handle: object) -> None:
        self.handle = handle

    @property
    def key(self) -> str:
        root = _member(self.handle, "root_path", "rootPath")
        if root is None:
            uri = _member(self.handle, "root_uri", "rootUri")
            root = _member(uri, "fs_path", "fsPath") if not isinstance(uri, (str, Path)) else uri
        if root is None:
            raise ValueError(f"repository handle has no root path: {self.handle!r}")
        return str(root)

    @property
    def state(self) -> object:
        return _member(self.handle, "state")

    @property
    def _head(self) -> object:
        return _member(self.state, "head", "HEAD")

    @property
    def branch(self) -> str:
        return _as_text(_member(self._head, "name"))

    @property
    def upstream(self) -> str:
        upstream = _member(self._head, "upstream")
        if isinstance(upstream, str):
            return upstream
        return _as_text(_member(upstream, "name"))

    @property
    def ahead(self) -> int:
        return _as_count(_member(self._head, "ahead"))

    @property
    def behind(self) -> int:
        return _as_count(_member(self._head, "behind"))

    @property
    def commit(self) -> str:
        return _as_text(_member(self._head, "commit"))

    def change_count(self) -> int:
        """Return working-tree + index + merge change counts."""
        state = self.state
        return sum(
            _collection_size(_member(state, *names))
            for names in (
                ("working_tree_changes", "workingTreeChanges"),
                ("index_changes", "indexChanges"),
                ("merge_changes", "mergeChanges"),
            )
        )

    def _refresh_callable(self) -> Callable[[], object] | None:
        method = _member(self.handle, "force_status_refresh", "status")
        return method if callable(method) else None

    @property
    def supports_refresh(self) -> bool:
        return self._refresh_callable() is not None

    async def refresh(self) -> None:
        """Force a status refresh when the handle supports one."""
        method = self._refresh_callable()
        if method is None:
            return
        result = method()
        if inspect.isawaitable(result):
            await result

    def _subscribe_callable(self) -> Callable[[ChangeListener], object] | None:
        method = _member(self.handle, "on_did_change", "onDidChange")
        if method is None:
            method = _member(self.state, "on_did_change", "onDidChange")
        return method if callable(method) else None

    @property
    def supports_change_events(self) -> bool:
        return self._subscribe_callable() is not None

    def subscribe(self, listener: ChangeListener) -> Disposable | None:
        """Subscribe to change notifications, or return ``None`` if unsupported."""
        method = self._subscribe_callable()
        if method is None:
            return None
        return _CallbackDisposable(method(listener))


def pick_repo(handles: Sequence[object], path: Path | str | None) -> RepoAdapter | None:
    """Pick the repository for ``path``: the deepest containing root wins.

    Falls back to the first repository when ``path`` is unset or lies
    outside every root; returns ``None`` when there are no repositories.
    """
    adapters = [RepoAdapter(handle) for handle in handles]
    if not adapters:
        return None
    if path is None:
        return adapters[0]
    matches = [adapter for adapter in adapters if is_path_inside(path, adapter.key)]
    if not matches:
        return adapters[0]
    return max(matches, key=lambda adapter: len(Path(adapter.key).resolve().parts))
