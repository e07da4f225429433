"""
Reference Rewriter for the cdnfix rewriter.

Turns relative asset references into absolute URLs on the inferred origin.

Every substitution is scoped to the construct the reference was found in:
a script path is only replaced inside <script src="...">, never in an
<img> tag that happens to use the same string. There is no global
find-and-replace.

Running the rewriter on its own output changes nothing: rewritten paths
are absolute and no longer scan as relative.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Iterator

from ..domain import ConstructKind, RelativeReference
from ..scanning.references import CONSTRUCT_MARKUP


@dataclass(frozen=True)
class RewriteResult:
    """Rewritten text and the number of substitutions that changed it."""
    text: str
    change_count: int

    def __iter__(self) -> Iterator:
        return iter((self.text, self.change_count))


def absolute_url(origin: str, path: str) -> str:
    """Join an origin and a relative path with exactly one slash."""
    if not origin.endswith("/"):
        origin += "/"
    return origin + path.lstrip("/")


def scoped_pattern(kind: ConstructKind, path: str) -> re.Pattern:
    """
    Pattern matching one literal path inside one construct.

    The markup around the path is case-insensitive; the path itself is
    matched exactly.
    """
    before, after = CONSTRUCT_MARKUP[kind]
    return re.compile(f"((?i:{before})){re.escape(path)}((?i:{after}))")


def _distinct(references: Iterable[RelativeReference]) -> list[tuple[ConstructKind, str]]:
    seen: dict[tuple[ConstructKind, str], None] = {}
    for ref in references:
        seen.setdefault((ref.construct_kind, ref.path), None)
    return list(seen)


def rewrite(
    document_text: str,
    origin: str,
    references: Iterable[RelativeReference],
) -> RewriteResult:
    """
    Rewrite relative references to absolute URLs under origin.

    Args:
        document_text: Raw HTML
        origin: CDN origin; a trailing slash is added if missing
        references: Output of the scanner for this document

    Returns:
        RewriteResult. change_count counts each (construct, path) pair
        whose substitution altered the text; zero means nothing changed.
    """
    text = document_text
    changes = 0

    for kind, path in _distinct(references):
        replacement = absolute_url(origin, path)
        pattern = scoped_pattern(kind, path)

        new_text = pattern.sub(
            lambda m: m.group(1) + replacement + m.group(2),
            text,
        )
        if new_text != text:
            text = new_text
            changes += 1

    return RewriteResult(text=text, change_count=changes)
