"""Tag assembler: merges bracket runs into Tag tokens."""

from __future__ import annotations

from typewriter.tokens import Primitive, PrimitiveKind, Span, Tag

_TAG_PARTS = frozenset({PrimitiveKind.LBRACKET, PrimitiveKind.TAG_TEXT, PrimitiveKind.RBRACKET})


def split_tag_content(content: str) -> tuple[str, tuple[str, ...]]:
    """Split bracket contents into (name, args) on whitespace."""
    parts = content.split()
    if not parts:
        return "", ()
    return parts[0], tuple(parts[1:])


def _make_tag(parts: list[Primitive], closed: bool) -> Tag:
    content = "".join(p.value for p in parts if p.kind == PrimitiveKind.TAG_TEXT)
    name, args = split_tag_content(content)
    raw = f"[{content}]" if closed else f"[{content}"
    return Tag(name, args, raw, closed, Span(parts[0].span.start, parts[-1].span.end))


def assemble(primitives: list[Primitive]) -> list[Primitive | Tag]:
    """Group each [ ... ] run into a single Tag; pass other primitives through.

    A tag interrupted by a line break or left open at end of input is
    closed at that point with ``closed=False``.
    """
    result: list[Primitive | Tag] = []
    current: list[Primitive] | None = None

    for prim in primitives:
        if prim.kind == PrimitiveKind.LBRACKET:
            if current is not None:
                result.append(_make_tag(current, closed=False))
            current = [prim]
            continue

        if prim.kind in _TAG_PARTS and current is not None:
            current.append(prim)
            if prim.kind == PrimitiveKind.RBRACKET:
                result.append(_make_tag(current, closed=True))
                current = None
            continue

        if current is not None:
            result.append(_make_tag(current, closed=False))
            current = None
        result.append(prim)

    if current is not None:
        result.append(_make_tag(current, closed=False))

    return result
