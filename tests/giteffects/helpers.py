# ruff: noqa: E402

from __future__ import annotations

import sys
from pathlib import Path
from types import SimpleNamespace

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from giteffects.detect import RepoEvaluator
from giteffects.dispatch import EffectDispatcher
from giteffects.effects import EffectPayload
from giteffects.models import EffectsConfig
from giteffects.provider import RepoAdapter
from giteffects.registry import RepoRegistry


class FakeRepo:
    """Repository handle double with optional refresh and change events."""

    def __init__(
        self,
        root: str,
        *,
        ahead: int = 0,
        behind: int = 0,
        commit: str = "",
        dirty: bool = False,
        branch: str = "main",
        upstream: str = "origin/main",
        refresh: bool = True,
        events: bool = True,
    ) -> None:
        self.root_path = root
        self.state = SimpleNamespace(
            head=SimpleNamespace(
                name=branch,
                upstream=SimpleNamespace(name=upstream),
                ahead=ahead,
                behind=behind,
                commit=commit,
            ),
            working_tree_changes=["file.txt"] if dirty else [],
            index_changes=[],
            merge_changes=[],
        )
        self.refresh_calls = 0
        self.listeners: list = []
        self.dispose_calls = 0
        if refresh:
            self.force_status_refresh = self._refresh
        if events:
            self.on_did_change = self._subscribe

    def set(self, *, dirty: bool | None = None, **head: object) -> None:
        for name, value in head.items():
            setattr(self.state.head, name, value)
        if dirty is not None:
            self.state.working_tree_changes = ["file.txt"] if dirty else []

    async def _refresh(self) -> None:
        self.refresh_calls += 1

    def _subscribe(self, listener):
        self.listeners.append(listener)

        def dispose() -> None:
            self.dispose_calls += 1
            if listener in self.listeners:
                self.listeners.remove(listener)

        return SimpleNamespace(dispose=dispose)

    def emit(self) -> None:
        for listener in list(self.listeners):
            listener()


class RecordingSink:
    def __init__(self) -> None:
        self.fired: list[EffectPayload] = []
        self.closed = False

    def fire(self, payload: EffectPayload) -> None:
        self.fired.append(payload)

    def close(self) -> None:
        self.closed = True


class SinkFactory:
    def __init__(self) -> None:
        self.sinks: list[RecordingSink] = []

    def __call__(self) -> RecordingSink:
        sink = RecordingSink()
        self.sinks.append(sink)
        return sink

    @property
    def fired(self) -> list[EffectPayload]:
        return [payload for sink in self.sinks for payload in sink.fired]


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingEvaluator(RepoEvaluator):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.calls: list[str] = []

    def evaluate(self, repo):
        adapter = repo if isinstance(repo, RepoAdapter) else RepoAdapter(repo)
        self.calls.append(adapter.key)
        return super().evaluate(adapter)


def make_pipeline(
    config: EffectsConfig | None = None,
    *,
    clock: FakeClock | None = None,
) -> SimpleNamespace:
    """Build registry, dispatcher and evaluator around a recording sink.

    Assign ``pipeline.config`` to change the settings seen by every part.
    """
    pipeline = SimpleNamespace(config=config or EffectsConfig(cooldown_ms=0))

    def settings() -> EffectsConfig:
        return pipeline.config

    factory = SinkFactory()
    registry = RepoRegistry()
    dispatcher = EffectDispatcher(
        factory,
        settings,
        clock=clock or FakeClock(),
    )
    evaluator = CountingEvaluator(registry, dispatcher, settings)
    pipeline.settings = settings
    pipeline.factory = factory
    pipeline.registry = registry
    pipeline.dispatcher = dispatcher
    pipeline.evaluator = evaluator
    return pipeline
