"""Color literals: #RGB, #RRGGBB, or three 0-255 integers."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from typewriter.tokens import is_hex_digit


@dataclass(frozen=True, slots=True)
class Color:
    """An sRGB color with 8-bit channels."""

    red: int
    green: int
    blue: int

    @classmethod
    def from_hex(cls, text: str) -> Color:
        """Parse #RGB or #RRGGBB. Raises ValueError on anything else."""
        color = _parse_hex(text)
        if color is None:
            raise ValueError(f"invalid hex color: {text!r}")
        return color

    @property
    def hex(self) -> str:
        return f"#{self.red:02x}{self.green:02x}{self.blue:02x}"

    @property
    def rgb(self) -> tuple[int, int, int]:
        return (self.red, self.green, self.blue)


BLACK = Color(0, 0, 0)
WHITE = Color(255, 255, 255)


def _parse_hex(text: str) -> Color | None:
    if not text.startswith("#"):
        return None
    digits = text[1:]
    if len(digits) not in (3, 6) or not all(is_hex_digit(ch) for ch in digits):
        return None
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return Color(int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


def _parse_channel(text: str) -> int | None:
    if not (text.isascii() and text.isdigit()):
        return None
    value = int(text)
    if value > 255:
        return None
    return value


def parse_color(args: Sequence[str]) -> Color | None:
    """Parse a color tag's arguments, or return None if they are not a color literal."""
    if len(args) == 1:
        return _parse_hex(args[0])
    if len(args) == 3:
        channels = [_parse_channel(a) for a in args]
        if any(c is None for c in channels):
            return None
        return Color(*channels)
    return None
