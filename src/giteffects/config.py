"""Configuration helpers for git-effects.

This module reads and writes the ``config.user.json`` file, validates it
with the :class:`~giteffects.models.EffectsConfig` model, and layers
``GIT_EFFECTS_*`` environment variables and CLI overrides on top.

Example:
    >>> from giteffects.config import merge_config
    >>> merge_config({"pollMs": 900}, {}).poll_ms
    900
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel, ValidationError

from . import log, paths
from .io import die
from .models import STRATEGY_VALUES, EffectsConfig

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True)
class EnvOverride:
    """Describe one supported environment variable override."""

    field: str
    env_var: str
    kind: str


ENV_OVERRIDES: tuple[EnvOverride, ...] = (
    EnvOverride(field="enabled", env_var="GIT_EFFECTS_ENABLED", kind="bool"),
    EnvOverride(field="strategy", env_var="GIT_EFFECTS_STRATEGY", kind="strategy"),
    EnvOverride(field="poll_ms", env_var="GIT_EFFECTS_POLL_MS", kind="int"),
    EnvOverride(field="debounce_ms", env_var="GIT_EFFECTS_DEBOUNCE_MS", kind="int"),
    EnvOverride(field="reconcile_ms", env_var="GIT_EFFECTS_RECONCILE_MS", kind="int"),
    EnvOverride(field="recovery_ms", env_var="GIT_EFFECTS_RECOVERY_MS", kind="int"),
    EnvOverride(field="cooldown_ms", env_var="GIT_EFFECTS_COOLDOWN_MS", kind="int"),
    EnvOverride(field="duration_ms", env_var="GIT_EFFECTS_DURATION_MS", kind="int"),
    EnvOverride(field="auto_push", env_var="GIT_EFFECTS_AUTO_PUSH", kind="bool"),
    EnvOverride(field="auto_pull", env_var="GIT_EFFECTS_AUTO_PULL", kind="bool"),
    EnvOverride(field="auto_commit", env_var="GIT_EFFECTS_AUTO_COMMIT", kind="bool"),
    EnvOverride(field="repos", env_var="GIT_EFFECTS_REPOS", kind="paths"),
)


def load_json(path: Path) -> dict | None:
    """Load a JSON file if it exists.

    Args:
        path: Path to the JSON file.

    Returns:
        Parsed payload as a dict, or ``None`` if the file does not exist.

    Example:
        >>> from pathlib import Path
        >>> load_json(Path("missing.json")) is None
        True
    """
    if not path.exists():
        return None
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def write_json(path: Path, payload: dict | BaseModel) -> None:
    """Write a JSON payload to disk."""
    if isinstance(payload, EffectsConfig):
        payload = payload.to_payload()
    elif isinstance(payload, BaseModel):
        payload = payload.model_dump()
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2)
        fh.write("\n")


def parse_effects_config(payload: dict, source: Path | str | None = None) -> EffectsConfig:
    """Validate a config payload, exiting with a readable error when invalid."""
    try:
        return EffectsConfig.model_validate(payload)
    except ValidationError as exc:
        location = f" at {source}" if source else ""
        die(f"invalid git-effects config{location}:\n{exc}")


def _parse_env_value(item: EnvOverride, raw: str) -> object:
    normalized = raw.strip().lower()
    if item.kind == "bool":
        if normalized in _TRUE_VALUES:
            return True
        if normalized in _FALSE_VALUES:
            return False
        die(f"{item.env_var} must be one of: 1|true|yes|on|0|false|no|off")
    if item.kind == "int":
        try:
            return int(normalized)
        except ValueError:
            die(f"{item.env_var} must be an integer number of milliseconds")
    if item.kind == "strategy":
        if normalized not in STRATEGY_VALUES:
            die(f"{item.env_var} must be one of: " + ", ".join(STRATEGY_VALUES))
        return normalized
    if item.kind == "paths":
        return [part.strip() for part in raw.split(os.pathsep) if part.strip()]
    return raw


def env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, object]:
    """Return config overrides taken from ``GIT_EFFECTS_*`` variables.

    Example:
        >>> env_overrides({"GIT_EFFECTS_POLL_MS": "750"})
        {'poll_ms': 750}
    """
    source = os.environ if environ is None else environ
    overrides: dict[str, object] = {}
    for item in ENV_OVERRIDES:
        raw = source.get(item.env_var, "").strip()
        if not raw:
            continue
        overrides[item.field] = _parse_env_value(item, raw)
    return overrides


def merge_config(
    file_payload: dict | None,
    overrides: Mapping[str, object],
    *,
    source: Path | str | None = None,
) -> EffectsConfig:
    """Validate a file payload with overrides applied on top.

    Overrides use snake_case field names; ``None`` values are ignored.
    """
    base = parse_effects_config(dict(file_payload or {}), source)
    updates = {key: value for key, value in overrides.items() if value is not None}
    if not updates:
        return base
    merged = base.model_dump()
    merged.update(updates)
    return parse_effects_config(merged, source)


def resolve_config_path(path: Path | str | None = None) -> Path:
    if path is None:
        return paths.user_config_path()
    return Path(path).expanduser()


def load_effects_config(
    path: Path | str | None = None,
    *,
    overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> EffectsConfig:
    """Load the effective config from file, environment and CLI overrides.

    Args:
        path: Config file path; defaults to the user config file.
        overrides: CLI-level overrides (highest precedence).
        environ: Environment mapping; defaults to ``os.environ``.

    Returns:
        Validated ``EffectsConfig``.
    """
    config_path = resolve_config_path(path)
    try:
        payload = load_json(config_path)
    except json.JSONDecodeError as exc:
        die(f"invalid JSON in {config_path}: {exc}")
    layered = env_overrides(environ)
    layered.update({k: v for k, v in (overrides or {}).items() if v is not None})
    return merge_config(payload, layered, source=config_path)


class LiveConfig:
    """Config source that re-reads the config file when it changes on disk.

    A broken edit keeps the last good config and logs a warning, so a
    running watcher never dies from a half-saved file.
    """

    def __init__(
        self,
        path: Path | str | None = None,
        *,
        overrides: Mapping[str, object] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.path = resolve_config_path(path)
        self._overrides = dict(overrides or {})
        self._environ = environ
        self._mtime: float | None = None
        self._current = load_effects_config(
            self.path, overrides=self._overrides, environ=self._environ
        )
        self._mtime = self._stat_mtime()

    def _stat_mtime(self) -> float | None:
        try:
            return self.path.stat().st_mtime
        except OSError:
            return None

    def __call__(self) -> EffectsConfig:
        return self.current()

    def current(self) -> EffectsConfig:
        mtime = self._stat_mtime()
        if mtime == self._mtime:
            return self._current
        self._mtime = mtime
        try:
            payload = load_json(self.path)
            layered = env_overrides(self._environ)
            layered.update({k: v for k, v in self._overrides.items() if v is not None})
            base = EffectsConfig.model_validate(dict(payload or {}))
            merged = base.model_dump()
            merged.update(layered)
            self._current = EffectsConfig.model_validate(merged)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            log.warning(f"[CFG] keeping previous config; failed to reload {self.path}: {exc}")
            return self._current
        log.debug(f"[CFG] reloaded {self.path}")
        return self._current
