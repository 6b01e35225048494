from __future__ import annotations

import asyncio
from pathlib import Path
from types import SimpleNamespace

import pytest

import giteffects.exec as exec_util
import giteffects.local as local
from giteffects.models import EffectsConfig
from giteffects.provider import RepoAdapter
from giteffects.scheduler import EventDrivenScheduler
from giteffects.snapshot import RepoSnap, read_snap
from tests.giteffects.helpers import make_pipeline

CLEAN = "# branch.oid aaa1111\n# branch.head main\n# branch.upstream origin/main\n# branch.ab +1 -0\n"
DIRTY = CLEAN + "? notes.txt\n"


class ScriptedRunner:
    def __init__(self, *outputs: str | None) -> None:
        self.outputs = list(outputs)
        self.calls = 0

    def run(self, request: exec_util.CommandRequest) -> exec_util.CommandResult | None:
        self.calls += 1
        output = self.outputs[min(self.calls, len(self.outputs)) - 1]
        if output is None:
            return exec_util.CommandResult(
                argv=request.argv, returncode=128, stdout="", stderr="fatal: broken"
            )
        return exec_util.CommandResult(argv=request.argv, returncode=0, stdout=output, stderr="")


class FakeObserver:
    def __init__(self) -> None:
        self.scheduled: list[tuple[object, str, bool]] = []
        self.started = False
        self.stopped = False

    def schedule(self, handler: object, path: str, recursive: bool = False) -> None:
        self.scheduled.append((handler, path, recursive))

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def join(self, timeout: float | None = None) -> None:
        return None

    @property
    def handler(self):
        return self.scheduled[0][0]


def _event(path: str, *, event_type: str = "modified", is_directory: bool = False):
    return SimpleNamespace(src_path=path, event_type=event_type, is_directory=is_directory)


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/repo/src/app.py", True),
        ("/repo/.git/HEAD", True),
        ("/repo/.git/index.lock", False),
        ("/repo/.git/objects/ab/cdef", False),
        ("C:\\repo\\.git\\logs\\HEAD", False),
    ],
)
def test_relevant_paths(path: str, expected: bool) -> None:
    assert local._is_relevant(path) is expected


def test_force_status_refresh_updates_state(tmp_path: Path) -> None:
    repo = local.LocalRepository(tmp_path, runner=ScriptedRunner(DIRTY))

    asyncio.run(repo.force_status_refresh())

    adapter = RepoAdapter(repo)
    assert adapter.key == str(tmp_path)
    assert (adapter.branch, adapter.upstream) == ("main", "origin/main")
    assert read_snap(repo) == RepoSnap(ahead=1, dirty=True, commit="aaa1111")


def test_state_before_first_refresh_reads_as_defaults(tmp_path: Path) -> None:
    repo = local.LocalRepository(tmp_path, runner=ScriptedRunner(CLEAN))

    assert read_snap(repo) == RepoSnap()


def test_change_event_refreshes_before_notifying(tmp_path: Path) -> None:
    observers: list[FakeObserver] = []

    def factory() -> FakeObserver:
        observer = FakeObserver()
        observers.append(observer)
        return observer

    runner = ScriptedRunner(CLEAN, DIRTY)
    repo = local.LocalRepository(tmp_path, runner=runner, observer_factory=factory)
    seen: list[RepoSnap] = []

    async def scenario() -> None:
        await repo.force_status_refresh()
        unsubscribe = repo.on_did_change(lambda: seen.append(read_snap(repo)))
        observer = observers[0]
        assert observer.started
        assert observer.scheduled[0][1:] == (str(tmp_path), True)

        observer.handler.on_any_event(_event(f"{tmp_path}/notes.txt"))
        observer.handler.on_any_event(_event(f"{tmp_path}/.git/index.lock"))
        observer.handler.on_any_event(_event(str(tmp_path), is_directory=True))
        for _ in range(20):
            await asyncio.sleep(0.01)
            if seen:
                break

        unsubscribe()
        assert observer.stopped

    asyncio.run(scenario())

    assert seen == [RepoSnap(ahead=1, dirty=True, commit="aaa1111")]
    assert runner.calls == 2


def test_failed_refresh_skips_listeners(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    warnings: list[str] = []
    monkeypatch.setattr(local.log, "warning", lambda message, **_kw: warnings.append(message))
    observer = FakeObserver()
    repo = local.LocalRepository(
        tmp_path, runner=ScriptedRunner(None), observer_factory=lambda: observer
    )
    seen: list[bool] = []

    async def scenario() -> None:
        repo.on_did_change(lambda: seen.append(True))
        observer.handler.on_any_event(_event(f"{tmp_path}/a.txt"))
        await asyncio.sleep(0.1)
        repo.close()

    asyncio.run(scenario())

    assert seen == []
    assert warnings and warnings[0].startswith("[WARN] status refresh failed")
    assert observer.stopped


def test_provider_lists_existing_roots_once(tmp_path: Path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    first.mkdir()
    second.mkdir()
    provider = local.LocalProvider(
        [first, str(first), second, tmp_path / "missing"], runner=ScriptedRunner(CLEAN)
    )

    repositories = provider.repositories

    assert [repo.root_path for repo in repositories] == [str(first.resolve()), str(second.resolve())]
    assert provider.repositories[0] is repositories[0]


def test_provider_follows_live_roots_and_closes_removed(tmp_path: Path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    first.mkdir()
    second.mkdir()
    roots = [str(first), str(second)]
    provider = local.LocalProvider(lambda: roots, runner=ScriptedRunner(CLEAN))
    removed = provider.repositories[1]

    roots.pop()

    assert [repo.root_path for repo in provider.repositories] == [str(first.resolve())]
    assert removed._closed


def test_refresh_all_logs_failures(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    warnings: list[str] = []
    monkeypatch.setattr(local.log, "warning", lambda message, **_kw: warnings.append(message))
    provider = local.LocalProvider([tmp_path], runner=ScriptedRunner(None))

    asyncio.run(provider.refresh_all())

    assert len(warnings) == 1
    assert provider.repositories[0].state.head is None


def test_repository_added_while_watching_detects_first_push(tmp_path: Path) -> None:
    ahead = CLEAN.replace("+1 -0", "+2 -0")
    pushed = CLEAN.replace("+1 -0", "+0 -0")
    observers: list[FakeObserver] = []

    def factory() -> FakeObserver:
        observer = FakeObserver()
        observers.append(observer)
        return observer

    roots: list[str] = []
    runner = ScriptedRunner(ahead, pushed)
    provider = local.LocalProvider(lambda: roots, runner=runner, observer_factory=factory)
    pipeline = make_pipeline(EffectsConfig(cooldown_ms=0, debounce_ms=200))
    scheduler = EventDrivenScheduler(provider, pipeline.evaluator, pipeline.settings)
    key = str(tmp_path.resolve())

    async def scenario() -> None:
        scheduler.start()
        await asyncio.sleep(0.01)
        roots.append(str(tmp_path))

        await scheduler.reconcile()

        assert pipeline.registry.snapshot(key) == RepoSnap(ahead=2, commit="aaa1111")
        observers[0].handler.on_any_event(_event(f"{tmp_path}/.git/refs/remotes/origin/main"))
        await asyncio.sleep(0.35)
        scheduler.stop()
        await scheduler.wait_closed()
        provider.close()

    asyncio.run(scenario())

    assert [payload.event for payload in pipeline.factory.fired] == ["push"]
    assert runner.calls == 2
