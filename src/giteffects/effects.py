"""Effect payloads sent to the presentation sink."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

EffectKind = Literal["success", "error", "info"]
EffectEvent = Literal["push", "pull", "commit", "manual"]


@dataclass(frozen=True)
class EffectPayload:
    """One effect to present.

    Example:
        >>> EffectPayload(kind="info", event="manual", repo_path="/repo",
        ...               title="Manual effect").to_dict()
        {'kind': 'info', 'event': 'manual', 'repoPath': '/repo', 'title': 'Manual effect'}
    """

    kind: EffectKind
    event: EffectEvent
    repo_path: str
    title: str
    branch: str | None = None
    upstream: str | None = None
    detail: str | None = None

    def to_dict(self) -> dict[str, str]:
        payload = {
            "kind": self.kind,
            "event": self.event,
            "repoPath": self.repo_path,
        }
        if self.branch:
            payload["branch"] = self.branch
        if self.upstream:
            payload["upstream"] = self.upstream
        payload["title"] = self.title
        if self.detail:
            payload["detail"] = self.detail
        return payload

    def describe(self) -> str:
        """Return the one-line diagnostic form used by the effect log."""
        return (
            f"{self.kind.upper()} {self.event} :: {self.title} :: "
            f"{self.branch or '?'} -> {self.upstream or '?'}"
        )


def shorten_reason(text: str | None, limit: int = 220) -> str:
    """Collapse whitespace and truncate a failure reason for display.

    Example:
        >>> shorten_reason("fatal:   no\\n upstream")
        'fatal: no upstream'
        >>> shorten_reason("")
        'Unknown error'
    """
    one_line = " ".join((text or "").split())
    if not one_line:
        return "Unknown error"
    if len(one_line) <= limit:
        return one_line
    return one_line[: limit - 1] + "…"
