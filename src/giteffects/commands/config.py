"""Implementation for the ``git-effects config`` command."""

from __future__ import annotations

import json

from .. import config, paths
from ..io import die, say
from ..models import EffectsConfig


def show_config(args: object) -> None:
    """Show the effective configuration, or create the user config file."""
    config_path = config.resolve_config_path(getattr(args, "config", None))
    if bool(getattr(args, "path", False)):
        say(str(config_path))
        return
    if bool(getattr(args, "init", False)):
        if config_path.exists():
            die(f"config already exists: {config_path}")
        paths.ensure_dir(config_path.parent)
        config.write_json(config_path, EffectsConfig())
        say(f"Wrote {config_path}")
        return
    effective = config.load_effects_config(config_path)
    say(json.dumps(effective.to_payload(), indent=2))
