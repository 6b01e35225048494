"""Command-line entry point for git-effects."""

from enum import Enum
from types import SimpleNamespace
from typing import Annotated, Optional

import typer

from . import __version__
from . import log as giteffects_log
from .commands import fire_effect as fire_cmd
from .commands import show_config as config_cmd
from .commands import show_status as status_cmd
from .commands import start_watch as watch_cmd

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Celebrate pushes, pulls and commits in local git repositories.",
)


class LogLevelName(str, Enum):
    trace = "trace"
    debug = "debug"
    info = "info"
    warning = "warning"
    error = "error"


class StrategyName(str, Enum):
    poll = "poll"
    watch = "watch"


class OutputFormat(str, Enum):
    table = "table"
    json = "json"


_state = SimpleNamespace(no_color=False)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


ConfigOption = Annotated[
    Optional[str],
    typer.Option("--config", help="Path to the JSON config file."),
]
GitPathOption = Annotated[
    Optional[str],
    typer.Option("--git-path", help="git executable to use."),
]


@app.callback()
def main(
    log_level: Annotated[
        Optional[LogLevelName],
        typer.Option("--log-level", help="Minimum log level to print.", case_sensitive=False),
    ] = None,
    no_color: Annotated[
        bool, typer.Option("--no-color", help="Disable coloured output.")
    ] = False,
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version."),
    ] = False,
) -> None:
    if log_level is not None:
        giteffects_log.set_level(log_level.value)
    if no_color:
        giteffects_log.set_no_color(True)
    _state.no_color = no_color


@app.command()
def watch(
    paths: Annotated[
        Optional[list[str]],
        typer.Argument(help="Repositories to watch (default: config 'repos' or cwd)."),
    ] = None,
    strategy: Annotated[
        Optional[StrategyName],
        typer.Option("--strategy", help="Observation strategy.", case_sensitive=False),
    ] = None,
    poll_ms: Annotated[Optional[int], typer.Option("--poll-ms", help="Polling interval.")] = None,
    debounce_ms: Annotated[
        Optional[int], typer.Option("--debounce-ms", help="Debounce quiet period.")
    ] = None,
    cooldown_ms: Annotated[
        Optional[int], typer.Option("--cooldown-ms", help="Minimum gap between effects.")
    ] = None,
    duration_ms: Annotated[
        Optional[int], typer.Option("--duration-ms", help="How long an effect stays up.")
    ] = None,
    config: ConfigOption = None,
    git_path: GitPathOption = None,
) -> None:
    """Watch repositories and show an effect when a push, pull or commit lands."""
    watch_cmd(
        SimpleNamespace(
            paths=paths or [],
            strategy=strategy.value if strategy else None,
            poll_ms=poll_ms,
            debounce_ms=debounce_ms,
            cooldown_ms=cooldown_ms,
            duration_ms=duration_ms,
            config=config,
            git_path=git_path,
            no_color=_state.no_color,
        )
    )


@app.command()
def status(
    paths: Annotated[
        Optional[list[str]],
        typer.Argument(help="Repositories to inspect (default: config 'repos' or cwd)."),
    ] = None,
    output_format: Annotated[
        OutputFormat, typer.Option("--format", help="Output format.", case_sensitive=False)
    ] = OutputFormat.table,
    config: ConfigOption = None,
    git_path: GitPathOption = None,
) -> None:
    """Show the current ahead/behind/dirty/commit snapshot of each repository."""
    status_cmd(
        SimpleNamespace(
            paths=paths or [],
            format=output_format.value,
            config=config,
            git_path=git_path,
        )
    )


@app.command()
def fire(
    path: Annotated[
        Optional[str], typer.Argument(help="Path inside the target repository.")
    ] = None,
    title: Annotated[str, typer.Option("--title", help="Effect title.")] = "Manual effect",
    detail: Annotated[str, typer.Option("--detail", help="Effect detail.")] = "CLI trigger",
    config: ConfigOption = None,
    git_path: GitPathOption = None,
) -> None:
    """Show a manual effect for the repository containing PATH."""
    fire_cmd(
        SimpleNamespace(
            path=path,
            title=title,
            detail=detail,
            config=config,
            git_path=git_path,
            no_color=_state.no_color,
        )
    )


@app.command("config")
def config_command(
    path: Annotated[bool, typer.Option("--path", help="Print the config file path.")] = False,
    init: Annotated[
        bool, typer.Option("--init", help="Write a config file with default values.")
    ] = False,
    config: ConfigOption = None,
) -> None:
    """Show the effective configuration."""
    config_cmd(SimpleNamespace(path=path, init=init, config=config))


def run() -> None:
    app()


if __name__ == "__main__":
    run()
