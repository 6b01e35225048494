"""Observation strategies that decide when repositories are re-evaluated.

Two mutually exclusive strategies share one interface:

* ``PollingScheduler`` re-reads every repository on a fixed interval,
  forcing a status refresh before each read.
* ``EventDrivenScheduler`` subscribes to per-repository change
  notifications, debounces bursts into one evaluation, and periodically
  reconciles the set of watched repositories with the provider. A newly
  attached repository is refreshed before its initial snapshot is taken.

Everything runs on one asyncio loop. ``stop()`` is synchronous and takes
effect immediately; an in-flight refresh is left to finish and its result
is discarded because the registry entry is gone by then.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable

from . import log
from .detect import RepoEvaluator
from .effects import shorten_reason
from .io import die
from .models import STRATEGY_VALUES, EffectsConfig
from .provider import RepoAdapter, RepositoryProvider
from .registry import RepoRegistry


def _adapters(provider: RepositoryProvider) -> list[RepoAdapter]:
    return [RepoAdapter(handle) for handle in list(provider.repositories or [])]


class ObservationScheduler(ABC):
    """Base class for observation strategies."""

    name = "base"

    def __init__(
        self,
        provider: RepositoryProvider,
        evaluator: RepoEvaluator,
        settings: Callable[[], EffectsConfig],
    ) -> None:
        self.provider = provider
        self.evaluator = evaluator
        self.settings = settings
        self._task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event | None = None
        self._stopped = False

    @property
    def registry(self) -> RepoRegistry:
        return self.evaluator.registry

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done() and not self._stopped

    def start(self) -> None:
        """Start the background loop on the running event loop (once)."""
        if self._task is not None:
            return
        self._stopped = False
        self._stop_event = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._run())
        log.info(f"auto-detect started ({self.name})")

    def stop(self) -> None:
        """Halt the loop and release every timer, listener and entry."""
        if self._stopped:
            return
        self._stopped = True
        if self._stop_event is not None:
            self._stop_event.set()
        self.registry.close()
        log.debug(f"auto-detect stopped ({self.name})")

    async def wait_closed(self) -> None:
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def _sleep(self, seconds: float) -> bool:
        """Sleep unless stopped first; return ``False`` once stopped."""
        if self._stop_event is None or self._stopped:
            return False
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return not self._stopped
        return False

    @abstractmethod
    async def _run(self) -> None: ...


class PollingScheduler(ObservationScheduler):
    """Self-rescheduling polling loop."""

    name = "poll"

    async def tick(self) -> float:
        """Run one polling pass and return the delay before the next one."""
        config = self.settings()
        try:
            adapters = _adapters(self.provider)
            self.registry.retain({adapter.key for adapter in adapters})
            for adapter in adapters:
                if self._stopped:
                    break
                key = adapter.key
                if self.registry.ensure(key) is None:
                    break
                await adapter.refresh()
                if self._stopped or key not in self.registry:
                    log.trace(f"[POLL] discarded refresh for removed repo {key}")
                    continue
                self.evaluator.evaluate(adapter)
        except Exception as exc:
            log.error(f"[ERR] poll failed: {shorten_reason(str(exc))}")
            return config.recovery_ms / 1000
        return config.poll_ms / 1000

    async def _run(self) -> None:
        while not self._stopped:
            delay = await self.tick()
            if not await self._sleep(delay):
                return


class EventDrivenScheduler(ObservationScheduler):
    """Debounced change notifications plus a periodic reconciliation sweep."""

    name = "watch"

    def __init__(
        self,
        provider: RepositoryProvider,
        evaluator: RepoEvaluator,
        settings: Callable[[], EffectsConfig],
    ) -> None:
        super().__init__(provider, evaluator, settings)
        self._unmonitored: set[str] = set()
        self._loop: asyncio.AbstractEventLoop | None = None

    def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        super().start()

    async def reconcile(self) -> None:
        """Attach new repositories and purge those that left the provider.

        A repository whose attach fails is dropped from the registry so the
        next sweep tries it again.
        """
        if self._stopped:
            return
        adapters = _adapters(self.provider)
        live_keys = {adapter.key for adapter in adapters}
        for key in self.registry.retain(live_keys):
            log.info(f"[DETACH] {key}")
        self._unmonitored &= live_keys
        for adapter in adapters:
            if self._stopped:
                return
            key = adapter.key
            if key in self.registry or key in self._unmonitored:
                continue
            try:
                await self._attach(adapter)
            except Exception as exc:
                self.registry.remove(key)
                log.error(f"[ERR] attach failed for {key}: {shorten_reason(str(exc))}")

    async def _attach(self, adapter: RepoAdapter) -> None:
        key = adapter.key
        if not adapter.supports_change_events:
            self._unmonitored.add(key)
            log.warning(f"[WARN] {key} has no change notifications; not monitored")
            return
        if self.registry.ensure(key) is None:
            return
        await adapter.refresh()
        entry = self.registry.get(key)
        if entry is None or self._stopped:
            log.trace(f"[WATCH] discarded attach for removed repo {key}")
            return
        entry.listener = adapter.subscribe(lambda: self.notify(key))
        self.evaluator.evaluate(adapter)
        log.info(f"[ATTACH] {key}")

    def notify(self, key: str) -> None:
        """Handle one change notification by re-arming the debounce timer."""
        entry = self.registry.get(key)
        if entry is None or self._stopped or self._loop is None:
            return
        entry.clear_timer()
        delay = self.settings().debounce_ms / 1000
        entry.timer = self._loop.call_later(delay, self._fire, key)

    def _fire(self, key: str) -> None:
        entry = self.registry.get(key)
        if entry is None or self._stopped:
            return
        entry.timer = None
        handle = next(
            (adapter for adapter in _adapters(self.provider) if adapter.key == key),
            None,
        )
        if handle is None:
            self.registry.remove(key)
            return
        try:
            self.evaluator.evaluate(handle)
        except Exception as exc:
            log.error(f"[ERR] evaluate failed for {key}: {shorten_reason(str(exc))}")

    async def _run(self) -> None:
        while not self._stopped:
            try:
                await self.reconcile()
            except Exception as exc:
                log.error(f"[ERR] reconcile failed: {shorten_reason(str(exc))}")
            if not await self._sleep(self.settings().reconcile_ms / 1000):
                return

    def stop(self) -> None:
        super().stop()
        self._unmonitored.clear()


_SCHEDULERS: dict[str, type[ObservationScheduler]] = {
    "poll": PollingScheduler,
    "watch": EventDrivenScheduler,
}


def create_scheduler(
    strategy: str,
    provider: RepositoryProvider,
    evaluator: RepoEvaluator,
    settings: Callable[[], EffectsConfig],
) -> ObservationScheduler:
    """Build the scheduler for ``strategy`` (poll|watch)."""
    scheduler_cls = _SCHEDULERS.get(strategy.strip().lower())
    if scheduler_cls is None:
        die("strategy must be one of: " + ", ".join(STRATEGY_VALUES))
    return scheduler_cls(provider, evaluator, settings)
