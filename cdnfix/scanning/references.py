"""
Relative Reference Scanner for the cdnfix rewriter.

Finds every relative asset path in a document, tagged with the markup
construct that carries it.

This is text pattern matching, not a DOM parse: the rest of the document
must come out byte-for-byte identical, and the documents are machine
generated with uniform markup. Unusually nested or malformed tags may
not match; that is a known limitation.

Recognized constructs:
    script  — <script src="...">
    css     — <link href="...css">
    img     — <img src="...">
    media   — <audio src="..."> / <video src="...">
    source  — <source src="...">
    loader  — UnityLoader.instantiate(container, "...")
"""

from __future__ import annotations

import re

from ..domain import ConstructKind, RelativeReference


# =============================================================================
# CONSTRUCT MARKUP
# =============================================================================

# Attribute values are quoted with either quote character
_OPEN = r"""\s*=\s*["']"""
_CLOSE_TAG = r"""["'][^>]*>"""

# (text before the path, text after the path) for each construct.
# The attribute name must follow whitespace so data-src and friends
# never match.
CONSTRUCT_MARKUP: dict[ConstructKind, tuple[str, str]] = {
    ConstructKind.SCRIPT: (rf"<script\b[^>]*?\ssrc{_OPEN}", _CLOSE_TAG),
    ConstructKind.CSS: (rf"<link\b[^>]*?\shref{_OPEN}", _CLOSE_TAG),
    ConstructKind.IMG: (rf"<img\b[^>]*?\ssrc{_OPEN}", _CLOSE_TAG),
    ConstructKind.LOADER: (r"""UnityLoader\.instantiate\(\s*[^,)]+,\s*["']""", r"""["']"""),
    ConstructKind.MEDIA: (rf"<(?:audio|video)\b[^>]*?\ssrc{_OPEN}", _CLOSE_TAG),
    ConstructKind.SOURCE: (rf"<source\b[^>]*?\ssrc{_OPEN}", _CLOSE_TAG),
}

# Anything that is not relative: a scheme (http:, data:, javascript:, ...),
# a protocol-relative or root-relative slash, or a fragment
_NOT_RELATIVE = r"(?![a-z][a-z0-9+.\-]*:|/|#)"

_ANY_PATH = r"""([^"']+)"""

# Stylesheet links only count when the path ends in .css
_CSS_PATH = r"""([^"'?#]+\.css(?:[?#][^"']*)?)"""

_RELATIVE_PATH = re.compile(_NOT_RELATIVE, re.IGNORECASE)


def is_relative_path(path: str) -> bool:
    """Check whether a path needs an origin to be fetchable."""
    return bool(path) and _RELATIVE_PATH.match(path) is not None


def _compile_scanner(kind: ConstructKind) -> re.Pattern:
    before, after = CONSTRUCT_MARKUP[kind]
    path = _CSS_PATH if kind is ConstructKind.CSS else _ANY_PATH
    return re.compile(before + _NOT_RELATIVE + path + after, re.IGNORECASE)


SCANNERS: dict[ConstructKind, re.Pattern] = {
    kind: _compile_scanner(kind) for kind in CONSTRUCT_MARKUP
}


# =============================================================================
# SCANNING
# =============================================================================

def scan(document_text: str) -> list[RelativeReference]:
    """
    Find all relative asset references in a document.

    Returns references grouped by construct, in document order within each
    construct. The same path may appear more than once.
    """
    references: list[RelativeReference] = []

    for kind, pattern in SCANNERS.items():
        for match in pattern.finditer(document_text):
            references.append(RelativeReference(
                raw_match=match.group(0),
                path=match.group(1),
                construct_kind=kind,
            ))

    return references


def unique_paths(references: list[RelativeReference]) -> tuple[str, ...]:
    """Distinct paths across references, first-seen order."""
    return tuple(dict.fromkeys(ref.path for ref in references))
