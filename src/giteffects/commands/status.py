"""Implementation for the ``git-effects status`` command."""

from __future__ import annotations

import json
from pathlib import Path

from rich import box
from rich.console import Console
from rich.table import Table

from .. import config, git, log
from ..effects import shorten_reason
from ..io import die, say
from ..local import LocalRepository
from ..snapshot import head_info, read_snap
from .resolve import resolve_roots_source

_FORMATS = {"table", "json"}


def _collect(
    repositories: list[LocalRepository], *, git_path: str | None = None
) -> list[dict[str, object]]:
    rows: list[dict[str, object]] = []
    for repo in repositories:
        try:
            repo.apply_status(git.read_status(Path(repo.root_path), git_path=git_path))
        except git.GitStatusError as exc:
            log.warning(shorten_reason(str(exc)))
            continue
        snap = read_snap(repo)
        head = head_info(repo)
        rows.append(
            {
                "repo": repo.root_path,
                "branch": head.branch,
                "upstream": head.upstream,
                "ahead": snap.ahead,
                "behind": snap.behind,
                "dirty": snap.dirty,
                "commit": snap.commit,
            }
        )
    return rows


def _render(rows: list[dict[str, object]]) -> None:
    console = Console()
    if not rows:
        console.print("No repositories found.")
        return
    table = Table(title="Repositories", box=box.SIMPLE)
    table.add_column("Repo", overflow="fold")
    table.add_column("Branch", no_wrap=True)
    table.add_column("Upstream", no_wrap=True)
    table.add_column("Ahead", justify="right")
    table.add_column("Behind", justify="right")
    table.add_column("Dirty", no_wrap=True)
    table.add_column("Commit", no_wrap=True)
    for row in rows:
        table.add_row(
            str(row["repo"]),
            str(row["branch"]) or "-",
            str(row["upstream"]) or "-",
            str(row["ahead"]),
            str(row["behind"]),
            "yes" if row["dirty"] else "no",
            str(row["commit"])[:7] or "-",
        )
    console.print(table)


def show_status(args: object) -> None:
    """Print the current snapshot of each watched repository."""
    format_value = str(getattr(args, "format", "table") or "table").lower()
    if format_value not in _FORMATS:
        die(f"unsupported format: {format_value}")
    settings = config.load_effects_config(getattr(args, "config", None))
    git_path = getattr(args, "git_path", None)
    roots = resolve_roots_source(
        list(getattr(args, "paths", None) or []), lambda: settings, git_path=git_path
    )
    root_list = roots() if callable(roots) else roots
    repositories = [
        LocalRepository(Path(root).expanduser().resolve(), git_path=git_path)
        for root in root_list
    ]
    rows = _collect(repositories, git_path=git_path)
    if format_value == "json":
        say(json.dumps(rows, indent=2))
        return
    _render(rows)
