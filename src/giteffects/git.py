"""Git helper functions used by the local repository provider."""

from dataclasses import dataclass, field
from pathlib import Path

from . import exec as exec_util


class GitStatusError(RuntimeError):
    """Raised when ``git status`` cannot be run or parsed for a repository."""


@dataclass(frozen=True)
class StatusSummary:
    """Parsed ``git status --porcelain=v2 --branch`` output."""

    branch: str = ""
    upstream: str = ""
    ahead: int = 0
    behind: int = 0
    commit: str = ""
    working_tree_changes: tuple[str, ...] = field(default_factory=tuple)
    index_changes: tuple[str, ...] = field(default_factory=tuple)
    merge_changes: tuple[str, ...] = field(default_factory=tuple)


def git_command(args: list[str], *, git_path: str | None = None) -> list[str]:
    """Build a git command using an optional executable path.

    Example:
        >>> git_command(["status"], git_path="/usr/bin/git")
        ['/usr/bin/git', 'status']
    """
    resolved = git_path.strip() if isinstance(git_path, str) else ""
    if not resolved:
        resolved = "git"
    return [resolved, *args]


def _parse_branch_header(line: str, values: dict[str, object]) -> None:
    parts = line.split(" ", 2)
    if len(parts) < 3:
        return
    _, name, value = parts
    value = value.strip()
    if name == "branch.oid":
        values["commit"] = "" if value == "(initial)" else value
    elif name == "branch.head":
        values["branch"] = "" if value == "(detached)" else value
    elif name == "branch.upstream":
        values["upstream"] = value
    elif name == "branch.ab":
        for token in value.split():
            try:
                count = abs(int(token))
            except ValueError:
                continue
            if token.startswith("+"):
                values["ahead"] = count
            elif token.startswith("-"):
                values["behind"] = count


def parse_status_porcelain_v2(text: str) -> StatusSummary:
    """Parse porcelain v2 status output into a ``StatusSummary``.

    Example:
        >>> summary = parse_status_porcelain_v2(
        ...     "# branch.oid abc1111\\n"
        ...     "# branch.head main\\n"
        ...     "# branch.upstream origin/main\\n"
        ...     "# branch.ab +2 -0\\n"
        ...     "? notes.txt\\n"
        ... )
        >>> summary.branch, summary.ahead, summary.working_tree_changes
        ('main', 2, ('notes.txt',))
    """
    values: dict[str, object] = {}
    working: list[str] = []
    index: list[str] = []
    merge: list[str] = []
    for line in text.splitlines():
        if not line:
            continue
        if line.startswith("# "):
            _parse_branch_header(line, values)
            continue
        kind = line[0]
        if kind == "?":
            working.append(line[2:])
            continue
        if kind == "u":
            parts = line.split(" ", 10)
            merge.append(parts[-1])
            continue
        if kind not in {"1", "2"}:
            continue
        parts = line.split(" ", 8 if kind == "1" else 9)
        if len(parts) < 2 or len(parts[1]) != 2:
            continue
        path = parts[-1].split("\t", 1)[0]
        index_status, worktree_status = parts[1][0], parts[1][1]
        if index_status != ".":
            index.append(path)
        if worktree_status != ".":
            working.append(path)
    return StatusSummary(
        branch=str(values.get("branch", "")),
        upstream=str(values.get("upstream", "")),
        ahead=int(values.get("ahead", 0)),
        behind=int(values.get("behind", 0)),
        commit=str(values.get("commit", "")),
        working_tree_changes=tuple(working),
        index_changes=tuple(index),
        merge_changes=tuple(merge),
    )


STATUS_TIMEOUT_SECONDS = 60.0


def status_request(repo_root: Path, *, git_path: str | None = None) -> exec_util.CommandRequest:
    """Return the request for a read-only status probe.

    ``--no-optional-locks`` keeps ``git status`` from rewriting the index,
    so probing a repository does not itself produce filesystem events.
    """
    argv = git_command(
        [
            "--no-optional-locks",
            "status",
            "--porcelain=v2",
            "--branch",
            "--untracked-files=normal",
        ],
        git_path=git_path,
    )
    return exec_util.CommandRequest(
        argv=tuple(argv), cwd=repo_root, timeout_seconds=STATUS_TIMEOUT_SECONDS
    )


def _failure_detail(result: exec_util.CommandResult) -> str:
    command_text = " ".join(result.argv)
    if result.timed_out:
        return f"command timed out: {command_text}"
    output = (result.stderr or result.stdout).strip()
    if output:
        return f"command failed: {command_text}\n{output}"
    return f"command failed: {command_text}"


def read_status(
    repo_root: Path,
    *,
    git_path: str | None = None,
    runner: exec_util.CommandRunner | None = None,
) -> StatusSummary:
    """Run ``git status`` for ``repo_root`` and return the parsed summary.

    Raises:
        GitStatusError: git is missing, exits non-zero or times out.
    """
    request = status_request(repo_root, git_path=git_path)
    result = exec_util.run_command(request, runner=runner)
    if result is None:
        raise GitStatusError(f"{repo_root}: missing required command: {request.argv[0]}")
    if not result.ok:
        raise GitStatusError(f"{repo_root}: {_failure_detail(result)}")
    return parse_status_porcelain_v2(result.stdout)


def find_repo_root(
    path: Path,
    *,
    git_path: str | None = None,
    runner: exec_util.CommandRunner | None = None,
) -> Path | None:
    """Return the worktree root containing ``path``, or ``None``."""
    cwd = path if path.is_dir() else path.parent
    result = exec_util.run_command(
        exec_util.CommandRequest(
            argv=tuple(git_command(["rev-parse", "--show-toplevel"], git_path=git_path)),
            cwd=cwd,
        ),
        runner=runner,
    )
    if result is None or not result.ok:
        return None
    root = result.stdout.strip()
    if not root:
        return None
    return Path(root)
