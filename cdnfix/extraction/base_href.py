"""
Base-Reference Extraction for the cdnfix rewriter.

Finds the document's <base href> and, when the proxy wrote it, decodes
the upstream URL hidden behind the proxy prefix.

Only the first <base> element counts, the same way browsers resolve it.
Documents without a proxied base are out of scope for rewriting.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

from ..codec import decode
from ..config import DEFAULT_PROXY_PREFIXES
from ..domain import ProxyBaseReference


BASE_HREF_PATTERN = re.compile(
    r"""<base\b[^>]*?\shref\s*=\s*["']([^"']+)["'][^>]*>""",
    re.IGNORECASE,
)


def find_base_href(document_text: str) -> Optional[str]:
    """Return the href of the first <base> element, if any."""
    match = BASE_HREF_PATTERN.search(document_text)
    if match is None:
        return None
    return match.group(1)


def strip_proxy_prefix(
    href: str,
    proxy_prefixes: Sequence[str] = DEFAULT_PROXY_PREFIXES,
) -> Optional[str]:
    """
    Remove the proxy mount point from an href.

    Returns None if the href is not under any of the prefixes.
    """
    for prefix in proxy_prefixes:
        if href.startswith(prefix):
            return href[len(prefix):]
    return None


def extract(
    document_text: str,
    proxy_prefixes: Sequence[str] = DEFAULT_PROXY_PREFIXES,
) -> Optional[ProxyBaseReference]:
    """
    Extract the proxied base reference from a document.

    Args:
        document_text: Raw HTML
        proxy_prefixes: Proxy mount points, tried in order

    Returns:
        ProxyBaseReference, or None if there is no base element or the
        base is not proxied. A base whose encoded part fails to decode
        still yields a reference, with decoded_origin=None.
    """
    raw_base = find_base_href(document_text)
    if raw_base is None:
        return None

    encoded = strip_proxy_prefix(raw_base, proxy_prefixes)
    if encoded is None:
        return None

    decoded = decode(encoded)

    return ProxyBaseReference(
        raw_base=raw_base,
        is_proxy_wrapped=True,
        decoded_origin=decoded or None,
    )
