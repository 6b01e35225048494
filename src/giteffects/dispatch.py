"""Cooldown-gated effect dispatch to a lazily created presentation sink."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import Protocol

from . import log
from .effects import EffectPayload, shorten_reason
from .models import EffectsConfig
from .provider import dispose_quietly


class EffectSink(Protocol):
    """Presentation surface that renders one effect per call."""

    def fire(self, payload: EffectPayload) -> None: ...


SinkFactory = Callable[[], EffectSink]


class LazySink:
    """Owned sink resource with acquire-or-create / release semantics.

    ``release()`` is idempotent and never raises; the next ``acquire()``
    after a release builds a fresh sink from the factory.
    """

    def __init__(self, factory: SinkFactory) -> None:
        self._factory = factory
        self._sink: EffectSink | None = None
        self.created = 0

    @property
    def active(self) -> bool:
        return self._sink is not None

    def acquire(self) -> EffectSink:
        if self._sink is None:
            self._sink = self._factory()
            self.created += 1
        return self._sink

    def release(self) -> None:
        sink, self._sink = self._sink, None
        if sink is not None:
            dispose_quietly(sink)


class EffectDispatcher:
    """Gate effects through one cooldown shared by all repositories.

    Args:
        sink_factory: Builds the presentation sink on demand.
        settings: Returns the current config; read on every dispatch.
        clock: Monotonic clock in seconds.
        loop: Loop used to schedule sink teardown; defaults to the
            running loop at dispatch time.
    """

    def __init__(
        self,
        sink_factory: SinkFactory,
        settings: Callable[[], EffectsConfig],
        *,
        clock: Callable[[], float] = time.monotonic,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.sink = LazySink(sink_factory)
        self._settings = settings
        self._clock = clock
        self._loop = loop
        self._last_fire: float | None = None
        self._teardown: asyncio.TimerHandle | None = None
        self._closed = False

    @property
    def last_fire(self) -> float | None:
        return self._last_fire

    def dispatch(self, payload: EffectPayload) -> bool:
        """Forward ``payload`` unless disabled or inside the cooldown window.

        Returns:
            ``True`` when the effect was accepted. A dropped effect is never
            queued or replayed.
        """
        if self._closed:
            return False
        config = self._settings()
        if not config.enabled:
            log.trace(f"[SKIP] effects disabled: {payload.event} @ {payload.repo_path}")
            return False
        now = self._clock()
        if self._last_fire is not None and (now - self._last_fire) * 1000 < config.cooldown_ms:
            log.debug(f"[COOLDOWN] dropped {payload.event} @ {payload.repo_path}")
            return False
        self._last_fire = now

        log.info(f"[EFFECT] {payload.describe()}")
        try:
            self.sink.acquire().fire(payload)
        except Exception as exc:
            log.error(f"[ERR] effect delivery failed: {shorten_reason(str(exc))}")
        self._schedule_teardown(config.duration_ms)
        return True

    def _schedule_teardown(self, duration_ms: int) -> None:
        if self._teardown is not None:
            self._teardown.cancel()
            self._teardown = None
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                self.sink.release()
                return
        self._teardown = loop.call_later(duration_ms / 1000, self._release)

    def _release(self) -> None:
        self._teardown = None
        self.sink.release()

    def close(self) -> None:
        self._closed = True
        if self._teardown is not None:
            self._teardown.cancel()
            self._teardown = None
        self.sink.release()
