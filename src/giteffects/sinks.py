"""Terminal presentation sink for effects."""

from __future__ import annotations

import sys
from typing import TextIO

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from .effects import EffectPayload

_BORDER_BY_KIND = {
    "success": "green",
    "error": "red",
    "info": "cyan",
}


class ConsoleEffectSink:
    """Render each effect as a rich panel on the terminal."""

    def __init__(self, *, file: TextIO | None = None, no_color: bool = False) -> None:
        self.console = Console(
            file=file or sys.stdout,
            soft_wrap=True,
            highlight=False,
            no_color=no_color,
        )
        self.closed = False

    def fire(self, payload: EffectPayload) -> None:
        if self.closed:
            raise RuntimeError("effect sink is closed")
        body = Text(payload.detail or "", style="bold" if payload.kind == "error" else "")
        subtitle = payload.repo_path
        if payload.branch:
            subtitle = f"{payload.branch} @ {payload.repo_path}"
        self.console.print(
            Panel(
                body,
                title=payload.title,
                subtitle=subtitle,
                border_style=_BORDER_BY_KIND.get(payload.kind, ""),
                expand=False,
            )
        )

    def close(self) -> None:
        self.closed = True
