"""Per-repository store of last snapshots and owned watch resources."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from .provider import dispose_quietly
from .snapshot import RepoSnap


@dataclass
class RegistryEntry:
    """Registry slot for one repository root.

    ``snapshot`` is ``None`` while the repository is pending its first
    observation. ``timer`` and ``listener`` are only used by the
    event-driven scheduler.
    """

    snapshot: RepoSnap | None = None
    timer: object | None = None
    listener: object | None = None

    def clear_timer(self) -> None:
        timer, self.timer = self.timer, None
        dispose_quietly(timer)

    def dispose(self) -> None:
        self.clear_timer()
        listener, self.listener = self.listener, None
        dispose_quietly(listener)


class RepoRegistry:
    """Map of repository root path to ``RegistryEntry``.

    Once ``close()`` has run the registry refuses new entries, so late
    callbacks that resolve after shutdown become no-ops.
    """

    def __init__(self) -> None:
        self._entries: dict[str, RegistryEntry] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def get(self, key: str) -> RegistryEntry | None:
        return self._entries.get(key)

    def ensure(self, key: str) -> RegistryEntry | None:
        """Return the entry for ``key``, creating it when missing."""
        if self._closed:
            return None
        entry = self._entries.get(key)
        if entry is None:
            entry = RegistryEntry()
            self._entries[key] = entry
        return entry

    def snapshot(self, key: str) -> RepoSnap | None:
        entry = self._entries.get(key)
        return entry.snapshot if entry else None

    def store(self, key: str, snap: RepoSnap) -> bool:
        """Store ``snap`` for an existing entry; return ``False`` if it is gone."""
        entry = self._entries.get(key)
        if entry is None or self._closed:
            return False
        entry.snapshot = snap
        return True

    def remove(self, key: str) -> bool:
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        entry.dispose()
        return True

    def retain(self, live_keys: set[str]) -> list[str]:
        """Purge every entry whose key is not in ``live_keys``."""
        removed = [key for key in self._entries if key not in live_keys]
        for key in removed:
            self.remove(key)
        return removed

    def clear(self) -> None:
        for key in list(self._entries):
            self.remove(key)

    def close(self) -> None:
        self._closed = True
        self.clear()
