"""Resolve which repositories a command operates on."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from pathlib import Path

from .. import git, log
from ..io import die
from ..models import EffectsConfig


def resolve_repo_paths(paths: Sequence[str], *, git_path: str | None = None) -> list[Path]:
    """Map user-supplied paths to their git worktree roots.

    Paths outside any repository are skipped with a warning.
    """
    roots: list[Path] = []
    for raw in paths:
        path = Path(raw).expanduser().resolve()
        root = git.find_repo_root(path, git_path=git_path)
        if root is None:
            log.warning(f"not a git repository: {path}")
            continue
        if root not in roots:
            roots.append(root)
    return roots


def resolve_roots_source(
    paths: Sequence[str],
    settings: Callable[[], EffectsConfig],
    *,
    git_path: str | None = None,
) -> Sequence[Path] | Callable[[], Iterable[str]]:
    """Pick the root list for a provider.

    Explicit paths win and are fixed for the run. Otherwise the ``repos``
    config list is used and re-read live. With neither, the repository
    containing the current directory is used.
    """
    if paths:
        roots = resolve_repo_paths(paths, git_path=git_path)
        if not roots:
            die("no git repositories found in the given paths")
        return roots
    if settings().repos:
        return lambda: settings().repos
    roots = resolve_repo_paths([str(Path.cwd())], git_path=git_path)
    if not roots:
        die("no repositories to watch; pass paths or set 'repos' in the config")
    return roots
