"""Implementation for the ``git-effects fire`` command."""

from __future__ import annotations

import asyncio
from pathlib import Path

from .. import config
from ..io import say
from ..local import LocalProvider
from ..service import EffectsService
from ..sinks import ConsoleEffectSink
from .resolve import resolve_repo_paths


async def _fire(
    service: EffectsService,
    provider: LocalProvider,
    target: Path,
    *,
    title: str,
    detail: str | None,
) -> bool:
    await provider.refresh_all()
    accepted = service.fire_manual(target, title=title, detail=detail)
    if accepted:
        await asyncio.sleep(service.settings().duration_ms / 1000)
    service.stop()
    return accepted


def fire_effect(args: object) -> None:
    """Present one manual effect for the repository containing the target path."""
    settings = config.load_effects_config(getattr(args, "config", None))
    git_path = getattr(args, "git_path", None)
    target = Path(getattr(args, "path", None) or Path.cwd()).expanduser().resolve()
    provider = LocalProvider(resolve_repo_paths([str(target)], git_path=git_path), git_path=git_path)
    no_color = bool(getattr(args, "no_color", False))
    service = EffectsService(
        provider,
        lambda: settings,
        sink_factory=lambda: ConsoleEffectSink(no_color=no_color),
    )
    accepted = asyncio.run(
        _fire(
            service,
            provider,
            target,
            title=str(getattr(args, "title", None) or "Manual effect"),
            detail=getattr(args, "detail", None) or "CLI trigger",
        )
    )
    if not accepted:
        say("Effect not shown (effects are disabled or cooling down).")
