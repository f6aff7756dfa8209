"""Per-token delay resolution shared by playback and analysis."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from typewriter.tags import DelayRule, Effect, RenderState
from typewriter.tokens import Display, Token


@dataclass(frozen=True, slots=True)
class DurationConfig:
    """Delays in milliseconds: per character, per newline, and per specific character."""

    char: float
    newline: float
    custom: Mapping[str, float] = field(default_factory=dict)


def token_delay(token: Token, effect: Effect, state: RenderState, config: DurationConfig) -> float:
    """Resolve how long to wait after token, given the state after it was applied.

    A fixed delay (sleep) always wins. Otherwise an active speed override
    replaces the base delay, which for a display character is its custom
    delay if one is configured.
    """
    if effect.delay == DelayRule.FIXED and effect.delay_ms is not None:
        return effect.delay_ms
    if state.speed_override is not None:
        return state.speed_override
    if effect.delay == DelayRule.NEWLINE:
        return config.newline
    if isinstance(token, Display) and token.char in config.custom:
        return config.custom[token.char]
    return config.char
