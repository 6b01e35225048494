"""Wire provider, detector, dispatcher and scheduler into one service."""

from __future__ import annotations

import asyncio
import signal
import time
from collections.abc import Callable
from pathlib import Path

from . import log
from .detect import RepoEvaluator
from .dispatch import EffectDispatcher, SinkFactory
from .effects import EffectPayload
from .models import EffectsConfig
from .provider import RepositoryProvider, dispose_quietly, pick_repo
from .registry import RepoRegistry
from .scheduler import ObservationScheduler, create_scheduler
from .snapshot import head_info


class EffectsService:
    """Own the full detection pipeline for one process.

    The strategy is fixed at construction; config changes to ``strategy``
    apply on the next start of the process, while every other setting is
    read live through ``settings``.
    """

    def __init__(
        self,
        provider: RepositoryProvider,
        settings: Callable[[], EffectsConfig],
        *,
        sink_factory: SinkFactory,
        strategy: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.provider = provider
        self.settings = settings
        self.strategy = (strategy or settings().strategy).strip().lower()
        self.registry = RepoRegistry()
        self.dispatcher = EffectDispatcher(sink_factory, settings, clock=clock)
        self.evaluator = RepoEvaluator(self.registry, self.dispatcher, settings)
        self.scheduler: ObservationScheduler = create_scheduler(
            self.strategy, provider, self.evaluator, settings
        )
        self._stopped = False

    async def start(self) -> None:
        self.scheduler.start()

    def stop(self) -> None:
        """Tear everything down; safe to call more than once."""
        if self._stopped:
            return
        self._stopped = True
        self.scheduler.stop()
        self.dispatcher.close()
        dispose_quietly(self.provider)
        log.debug("service stopped")

    async def wait_closed(self) -> None:
        await self.scheduler.wait_closed()

    async def run_until_stopped(self, stop_event: asyncio.Event | None = None) -> None:
        """Run until ``stop_event`` is set or SIGINT/SIGTERM arrives."""
        event = stop_event or asyncio.Event()
        loop = asyncio.get_running_loop()
        installed: list[signal.Signals] = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, event.set)
            except (NotImplementedError, RuntimeError, ValueError):
                continue
            installed.append(sig)
        await self.start()
        try:
            await event.wait()
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)
            self.stop()
            await self.wait_closed()

    def fire_manual(
        self,
        path: Path | str | None = None,
        *,
        title: str = "Manual effect",
        detail: str | None = "CLI trigger",
    ) -> bool:
        """Dispatch an ``info``/``manual`` effect for the repository at ``path``."""
        repo = pick_repo(list(self.provider.repositories or []), path)
        if repo is None:
            payload = EffectPayload(
                kind="info",
                event="manual",
                repo_path=str(path) if path else "(no repository)",
                title=title,
                detail=detail,
            )
        else:
            head = head_info(repo)
            payload = EffectPayload(
                kind="info",
                event="manual",
                repo_path=repo.key,
                branch=head.branch or None,
                upstream=head.upstream or None,
                title=title,
                detail=detail,
            )
        return self.dispatcher.dispatch(payload)
