"""Implementation for the ``git-effects watch`` command."""

from __future__ import annotations

import asyncio

from .. import config, log
from ..local import LocalProvider
from ..service import EffectsService
from ..sinks import ConsoleEffectSink
from .resolve import resolve_roots_source


def config_overrides(args: object) -> dict[str, object]:
    """Collect CLI-level config overrides from parsed arguments."""
    return {
        "strategy": getattr(args, "strategy", None),
        "poll_ms": getattr(args, "poll_ms", None),
        "debounce_ms": getattr(args, "debounce_ms", None),
        "cooldown_ms": getattr(args, "cooldown_ms", None),
        "duration_ms": getattr(args, "duration_ms", None),
    }


def start_watch(args: object) -> None:
    """Watch repositories until interrupted and present detected effects."""
    live = config.LiveConfig(getattr(args, "config", None), overrides=config_overrides(args))
    git_path = getattr(args, "git_path", None)
    roots = resolve_roots_source(list(getattr(args, "paths", None) or []), live, git_path=git_path)
    provider = LocalProvider(roots, git_path=git_path)
    no_color = bool(getattr(args, "no_color", False))
    service = EffectsService(
        provider,
        live,
        sink_factory=lambda: ConsoleEffectSink(no_color=no_color),
    )
    repos = ", ".join(handle.root_path for handle in provider.repositories) or "(none)"
    log.info(f"watching {repos} [{service.strategy}]")
    try:
        asyncio.run(service.run_until_stopped())
    except KeyboardInterrupt:
        service.stop()
