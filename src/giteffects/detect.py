"""Transition heuristics and the evaluate-repo step shared by both schedulers.

The rules infer plausible causes from state deltas only. A branch switch
that resets ahead/behind to zero is indistinguishable from a real
push/pull; that limitation is kept as-is.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from . import log
from .effects import EffectEvent, EffectPayload
from .models import EffectsConfig
from .provider import RepoAdapter
from .registry import RepoRegistry
from .snapshot import HeadInfo, RepoSnap, head_info, read_snap

_SHORT_COMMIT = 7


@dataclass(frozen=True)
class DetectFlags:
    auto_push: bool = True
    auto_pull: bool = True
    auto_commit: bool = True

    @classmethod
    def from_config(cls, config: EffectsConfig) -> "DetectFlags":
        return cls(
            auto_push=config.auto_push,
            auto_pull=config.auto_pull,
            auto_commit=config.auto_commit,
        )


@dataclass(frozen=True)
class Transition:
    event: EffectEvent
    prev: RepoSnap
    cur: RepoSnap


def detect_transitions(
    prev: RepoSnap, cur: RepoSnap, flags: DetectFlags | None = None
) -> list[Transition]:
    """Infer push/pull/commit transitions between two snapshots.

    The three rules are independent; every matching rule yields one
    transition, always in push, pull, commit order.

    Example:
        >>> prev = RepoSnap(ahead=2, commit="abc1111")
        >>> cur = RepoSnap(ahead=0, commit="abc1111")
        >>> [t.event for t in detect_transitions(prev, cur)]
        ['push']
    """
    active = flags or DetectFlags()
    found: list[Transition] = []
    if active.auto_push and prev.ahead > 0 and cur.ahead == 0:
        found.append(Transition("push", prev, cur))
    if active.auto_pull and prev.behind > 0 and cur.behind == 0:
        found.append(Transition("pull", prev, cur))
    if (
        active.auto_commit
        and cur.commit
        and prev.commit
        and cur.commit != prev.commit
        and prev.dirty
        and not cur.dirty
    ):
        found.append(Transition("commit", prev, cur))
    return found


def build_payload(transition: Transition, repo_path: str, head: HeadInfo) -> EffectPayload:
    branch = head.branch or "?"
    upstream = head.upstream or "?"
    if transition.event == "push":
        title = "Push succeeded"
        detail = f"{branch} → {upstream}"
    elif transition.event == "pull":
        title = "Pull succeeded"
        detail = f"{branch} ← {upstream}"
    else:
        title = "Commit completed"
        detail = (
            f"HEAD updated ({transition.prev.commit[:_SHORT_COMMIT]} → "
            f"{transition.cur.commit[:_SHORT_COMMIT]})"
        )
    return EffectPayload(
        kind="success",
        event=transition.event,
        repo_path=repo_path,
        branch=head.branch or None,
        upstream=head.upstream or None,
        title=title,
        detail=detail,
    )


class Dispatch(Protocol):
    def dispatch(self, payload: EffectPayload) -> bool: ...


class RepoEvaluator:
    """Read, detect, dispatch and store for one repository at a time."""

    def __init__(
        self,
        registry: RepoRegistry,
        dispatcher: Dispatch,
        settings: Callable[[], EffectsConfig],
    ) -> None:
        self.registry = registry
        self.dispatcher = dispatcher
        self.settings = settings

    def evaluate(self, repo: object) -> list[EffectPayload]:
        """Evaluate one repository and return the payloads that were produced.

        A repository without a stored snapshot only records one. The
        current snapshot is stored whether or not anything was dispatched.
        """
        adapter = repo if isinstance(repo, RepoAdapter) else RepoAdapter(repo)
        key = adapter.key
        entry = self.registry.ensure(key)
        if entry is None:
            return []
        cur = read_snap(adapter)
        prev = entry.snapshot
        if prev is None:
            self.registry.store(key, cur)
            log.debug(f"[INIT] {key} ahead={cur.ahead} behind={cur.behind} dirty={cur.dirty}")
            return []

        flags = DetectFlags.from_config(self.settings())
        transitions = detect_transitions(prev, cur, flags)
        payloads: list[EffectPayload] = []
        if transitions:
            head = head_info(adapter)
            for transition in transitions:
                payload = build_payload(transition, key, head)
                log.debug(f"[DETECT] {transition.event} @ {key}")
                self.dispatcher.dispatch(payload)
                payloads.append(payload)
        self.registry.store(key, cur)
        return payloads
