"""Style resolver: applies toggle markers to display characters."""

from __future__ import annotations

from typewriter.tokens import Display, Primitive, PrimitiveKind, Style, StyleMarkers, Tag, Token


def resolve_styles(
    items: list[Primitive | Tag], markers: StyleMarkers | None = None
) -> list[Token]:
    """Convert characters to Display tokens stamped with the active style set.

    Style markers flip their style and are dropped. Line breaks are dropped;
    every token keeps its source span so callers can regroup by line.
    """
    markers = markers or StyleMarkers()
    active = Style.NONE
    tokens: list[Token] = []

    for item in items:
        if isinstance(item, Tag):
            tokens.append(item)
        elif item.kind == PrimitiveKind.STYLE:
            style = markers.style_for(item.value)
            if style is not None:
                active ^= style
        elif item.kind == PrimitiveKind.CHAR:
            tokens.append(Display(item.value, active, item.span))

    return tokens
