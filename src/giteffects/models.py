"""Pydantic models for git-effects configuration data."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

STRATEGY_VALUES = ("poll", "watch")
Strategy = Literal["poll", "watch"]

MIN_INTERVAL_MS = 200
MIN_RECONCILE_MS = 1000


def _clamp(value: int, floor: int) -> int:
    return value if value >= floor else floor


class EffectsConfig(BaseModel):
    """Effective runtime settings for detection and dispatch.

    Keys are read and written in camelCase (``pollMs``); snake_case
    attribute names are accepted on input as well. Timing values below
    their floor are clamped rather than rejected.

    Attributes:
        enabled: When false, dispatch never reaches the sink.
        strategy: Observation strategy (poll|watch).
        poll_ms: Delay between polling ticks.
        debounce_ms: Quiet period after the last change notification.
        reconcile_ms: Period of the repository reconciliation sweep.
        recovery_ms: Delay before the next tick after a failed one.
        cooldown_ms: Minimum gap between two dispatched effects.
        duration_ms: How long the sink stays open after an effect.
        auto_push: Detect completed pushes.
        auto_pull: Detect completed pulls.
        auto_commit: Detect finalized commits.
        repos: Repository paths to watch.

    Example:
        >>> EffectsConfig.model_validate({"pollMs": 50}).poll_ms
        200
    """

    model_config = ConfigDict(
        extra="allow",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    enabled: bool = True
    strategy: Strategy = "poll"
    poll_ms: int = 500
    debounce_ms: int = 400
    reconcile_ms: int = 10_000
    recovery_ms: int = 1000
    cooldown_ms: int = 1200
    duration_ms: int = 2200
    auto_push: bool = True
    auto_pull: bool = True
    auto_commit: bool = True
    repos: list[str] = Field(default_factory=list)

    @field_validator("strategy", mode="before")
    @classmethod
    def normalize_strategy(cls, value: object) -> object:
        if value is None:
            return "poll"
        if isinstance(value, str):
            return value.strip().lower() or "poll"
        return value

    @field_validator("poll_ms", "debounce_ms", "recovery_ms", mode="after")
    @classmethod
    def clamp_interval(cls, value: int) -> int:
        return _clamp(value, MIN_INTERVAL_MS)

    @field_validator("reconcile_ms", mode="after")
    @classmethod
    def clamp_reconcile(cls, value: int) -> int:
        return _clamp(value, MIN_RECONCILE_MS)

    @field_validator("cooldown_ms", "duration_ms", mode="after")
    @classmethod
    def clamp_non_negative(cls, value: int) -> int:
        return _clamp(value, 0)

    @field_validator("repos", mode="before")
    @classmethod
    def normalize_repos(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        if isinstance(value, list):
            normalized: list[str] = []
            for item in value:
                if not isinstance(item, str):
                    continue
                item = item.strip()
                if item and item not in normalized:
                    normalized.append(item)
            return normalized
        return value

    def to_payload(self) -> dict:
        """Return the camelCase JSON form of this config."""
        return self.model_dump(by_alias=True, exclude_unset=False)
