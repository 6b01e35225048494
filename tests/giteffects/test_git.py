from __future__ import annotations

from pathlib import Path

import pytest

import giteffects.exec as exec_util
import giteffects.git as git

STATUS_OUTPUT = "\n".join(
    [
        "# branch.oid 4f2a9c1d2e3f",
        "# branch.head feature/x",
        "# branch.upstream origin/feature/x",
        "# branch.ab +1 -3",
        "1 M. N... 100644 100644 100644 aaa bbb src/app.py",
        "1 .M N... 100644 100644 100644 aaa bbb README.md",
        "1 MM N... 100644 100644 100644 aaa bbb both.py",
        "2 R. N... 100644 100644 100644 aaa bbb R100 new.py\told.py",
        "u UU N... 100644 100644 100644 100644 aaa bbb ccc conflict.txt",
        "? scratch.txt",
        "! ignored.log",
        "",
    ]
)


class FakeRunner:
    def __init__(self, result: exec_util.CommandResult | None) -> None:
        self.result = result
        self.requests: list[exec_util.CommandRequest] = []

    def run(self, request: exec_util.CommandRequest) -> exec_util.CommandResult | None:
        self.requests.append(request)
        return self.result


def _result(stdout: str = "", returncode: int = 0, stderr: str = "") -> exec_util.CommandResult:
    return exec_util.CommandResult(
        argv=("git",), returncode=returncode, stdout=stdout, stderr=stderr
    )


def test_parse_status_reads_branch_headers_and_changes() -> None:
    summary = git.parse_status_porcelain_v2(STATUS_OUTPUT)

    assert summary.commit == "4f2a9c1d2e3f"
    assert summary.branch == "feature/x"
    assert summary.upstream == "origin/feature/x"
    assert (summary.ahead, summary.behind) == (1, 3)
    assert summary.index_changes == ("src/app.py", "both.py", "new.py")
    assert summary.working_tree_changes == ("README.md", "both.py", "scratch.txt")
    assert summary.merge_changes == ("conflict.txt",)


def test_parse_status_for_fresh_repository() -> None:
    summary = git.parse_status_porcelain_v2(
        "# branch.oid (initial)\n# branch.head (detached)\n"
    )

    assert summary == git.StatusSummary()


def test_parse_status_without_upstream_reports_zero_counts() -> None:
    summary = git.parse_status_porcelain_v2("# branch.oid abc\n# branch.head main\n")

    assert (summary.upstream, summary.ahead, summary.behind) == ("", 0, 0)


def test_read_status_uses_read_only_porcelain_command(tmp_path: Path) -> None:
    runner = FakeRunner(_result("# branch.oid abc\n# branch.head main\n"))

    summary = git.read_status(tmp_path, git_path="/opt/git", runner=runner)

    assert summary.commit == "abc"
    request = runner.requests[0]
    assert request.argv[0] == "/opt/git"
    assert "--no-optional-locks" in request.argv
    assert "--porcelain=v2" in request.argv
    assert request.cwd == tmp_path
    assert request.timeout_seconds == 60.0


@pytest.mark.parametrize(
    "result",
    [None, _result(returncode=128, stderr="fatal: not a git repository")],
)
def test_read_status_wraps_failures(tmp_path: Path, result) -> None:
    with pytest.raises(git.GitStatusError) as excinfo:
        git.read_status(tmp_path, runner=FakeRunner(result))

    assert str(tmp_path) in str(excinfo.value)


@pytest.mark.parametrize(
    ("result", "message"),
    [
        (None, "missing required command: git"),
        (_result(returncode=128, stderr="fatal: not a git repository"), "fatal: not a git repository"),
        (
            exec_util.CommandResult(
                argv=("git", "status"), returncode=124, stdout="", stderr="", timed_out=True
            ),
            "command timed out: git status",
        ),
    ],
)
def test_read_status_error_names_the_failure(tmp_path: Path, result, message: str) -> None:
    with pytest.raises(git.GitStatusError, match=message):
        git.read_status(tmp_path, runner=FakeRunner(result))


def test_find_repo_root_returns_toplevel(tmp_path: Path) -> None:
    runner = FakeRunner(_result(f"{tmp_path}\n"))
    nested = tmp_path / "src"
    nested.mkdir()

    assert git.find_repo_root(nested, runner=runner) == tmp_path
    assert runner.requests[0].cwd == nested
    assert runner.requests[0].argv == ("git", "rev-parse", "--show-toplevel")


def test_find_repo_root_outside_repository(tmp_path: Path) -> None:
    runner = FakeRunner(_result(returncode=128))

    assert git.find_repo_root(tmp_path / "file.txt", runner=runner) is None
    assert runner.requests[0].cwd == tmp_path
    assert git.find_repo_root(tmp_path, runner=FakeRunner(None)) is None
