"""Canonical repository snapshots read from provider handles."""

from __future__ import annotations

from dataclasses import dataclass

from .provider import RepoAdapter


@dataclass(frozen=True)
class RepoSnap:
    """Observable state of one repository at one evaluation instant.

    Attributes:
        ahead: Local commits not yet on the upstream.
        behind: Upstream commits not yet on the local branch.
        dirty: Any working-tree, staged or unresolved-merge change present.
        commit: Current HEAD id, empty when unknown.
    """

    ahead: int = 0
    behind: int = 0
    dirty: bool = False
    commit: str = ""


@dataclass(frozen=True)
class HeadInfo:
    branch: str = ""
    upstream: str = ""
    ahead: int = 0
    behind: int = 0
    commit: str = ""


def _adapt(repo: object) -> RepoAdapter:
    return repo if isinstance(repo, RepoAdapter) else RepoAdapter(repo)


def read_snap(repo: object) -> RepoSnap:
    """Read a ``RepoSnap`` from a handle's already available state.

    Example:
        >>> from types import SimpleNamespace
        >>> handle = SimpleNamespace(
        ...     root_path="/repo",
        ...     state=SimpleNamespace(head={"ahead": 2, "commit": "abc1111"},
        ...                           working_tree_changes=["a.py"]),
        ... )
        >>> read_snap(handle)
        RepoSnap(ahead=2, behind=0, dirty=True, commit='abc1111')
    """
    adapter = _adapt(repo)
    return RepoSnap(
        ahead=adapter.ahead,
        behind=adapter.behind,
        dirty=adapter.change_count() > 0,
        commit=adapter.commit,
    )


def head_info(repo: object) -> HeadInfo:
    adapter = _adapt(repo)
    return HeadInfo(
        branch=adapter.branch,
        upstream=adapter.upstream,
        ahead=adapter.ahead,
        behind=adapter.behind,
        commit=adapter.commit,
    )
