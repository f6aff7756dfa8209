"""--debug token-queue dump to stderr."""

from __future__ import annotations

import sys
from typing import TextIO

from typewriter.tokens import STYLE_ORDER, Display, Token


def dump_tokens(tokens: list[Token], *, file: TextIO | None = None) -> None:
    """Print one line per token: index, position, and content."""
    file = file or sys.stderr
    file.write(f"Queue ({len(tokens)} tokens)\n")
    for i, token in enumerate(tokens):
        pos = f"{token.span.start.line}:{token.span.start.column}"
        if isinstance(token, Display):
            styles = "".join(s.name[0] for s in STYLE_ORDER if s in token.styles)
            suffix = f" [{styles}]" if styles else ""
            file.write(f"  {i:>4} {pos:<8} Display({token.char!r}){suffix}\n")
        else:
            args = " ".join(token.args)
            closed = "" if token.closed else " unclosed"
            file.write(f"  {i:>4} {pos:<8} Tag({token.name!r} {args!r}){closed}\n")
