# ruff: noqa: E402

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import giteffects.config as config
import giteffects.log as log


@pytest.fixture(autouse=True)
def _isolated_runtime(monkeypatch: pytest.MonkeyPatch) -> None:
    for item in config.ENV_OVERRIDES:
        monkeypatch.delenv(item.env_var, raising=False)
    monkeypatch.delenv("GIT_EFFECTS_LOG_LEVEL", raising=False)
    monkeypatch.setattr(log, "_configured_level", None)
    monkeypatch.setattr(log, "_no_color", None)
