"""Command implementations exposed by the git-effects CLI."""

from .config import show_config
from .fire import fire_effect
from .status import show_status
from .watch import start_watch

__all__ = [
    "fire_effect",
    "show_config",
    "show_status",
    "start_watch",
]
