"""
Origin Inference Engine for the cdnfix rewriter.

Works out which CDN a document's assets were really served from.

Strategies, first success wins:
    1. Absolute vote — tally the absolute CDN URLs already in the document,
       cut down to their origin prefix, and take the most common one
    2. Decoded base  — use the decoded <base href> if it is a CDN URL
    3. Known origin  — look the document up in an injected knowledge base

If nothing matches, the document cannot be fixed automatically.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

from ..config import ASSET_ROOT_MARKERS, CDN_HOSTS
from ..domain import (
    CandidateOrigin,
    OriginResolution,
    OriginStrategy,
    ProxyBaseReference,
)
from .known_origins import KnownOriginTable


# =============================================================================
# CANDIDATE TALLY
# =============================================================================

def build_cdn_url_pattern(cdn_hosts: Sequence[str] = CDN_HOSTS) -> re.Pattern:
    """
    Pattern for absolute URLs under any of the CDN hosts.

    A match runs up to the last '/' before a quote or whitespace, so it
    covers the directory part of the URL only.
    """
    hosts = "|".join(re.escape(host) for host in cdn_hosts)
    return re.compile(rf"""https://(?:{hosts})/[^"'\s]+/""")


CDN_URL_PATTERN = build_cdn_url_pattern()


def truncate_at_marker(
    url: str,
    markers: Sequence[str] = ASSET_ROOT_MARKERS,
) -> str:
    """
    Cut a URL at the first asset-root marker found.

    Markers are tried in order; the URL is cut just after the slash that
    opens the marker. URLs with no marker are returned as they are.
    """
    for marker in markers:
        index = url.find(marker)
        if index != -1:
            return url[:index + 1]
    return url


def tally_candidates(
    document_text: str,
    cdn_hosts: Sequence[str] = CDN_HOSTS,
    markers: Sequence[str] = ASSET_ROOT_MARKERS,
) -> list[CandidateOrigin]:
    """Count votes per origin prefix, in first-seen document order."""
    if tuple(cdn_hosts) == CDN_HOSTS:
        pattern = CDN_URL_PATTERN
    else:
        pattern = build_cdn_url_pattern(cdn_hosts)

    candidates: dict[str, CandidateOrigin] = {}
    for match in pattern.finditer(document_text):
        prefix = truncate_at_marker(match.group(0), markers)
        candidate = candidates.get(prefix)
        if candidate is None:
            candidate = candidates[prefix] = CandidateOrigin(url_prefix=prefix)
        candidate.vote_count += 1

    return list(candidates.values())


def pick_candidate(candidates: Sequence[CandidateOrigin]) -> Optional[CandidateOrigin]:
    """Highest vote count wins; ties keep the earliest candidate."""
    best: Optional[CandidateOrigin] = None
    for candidate in candidates:
        if best is None or candidate.vote_count > best.vote_count:
            best = candidate
    return best


# =============================================================================
# DECODED BASE
# =============================================================================

def is_cdn_url(url: str, cdn_hosts: Sequence[str] = CDN_HOSTS) -> bool:
    """Check whether a URL names one of the CDN hosts."""
    return any(host.split("/")[0] in url for host in cdn_hosts)


def normalize_origin(url: str) -> str:
    """
    Make an origin usable as a URL prefix.

    Adds https:// when the URL has no scheme and ensures exactly one
    trailing slash.
    """
    url = url.strip()
    if url.startswith("//"):
        url = "https:" + url
    elif "://" not in url:
        url = "https://" + url
    return url.rstrip("/") + "/"


# =============================================================================
# INFERENCE
# =============================================================================

def infer(
    document_text: str,
    base_reference: Optional[ProxyBaseReference],
    known_origins: Optional[KnownOriginTable] = None,
    document_id: str = "",
    cdn_hosts: Sequence[str] = CDN_HOSTS,
    markers: Sequence[str] = ASSET_ROOT_MARKERS,
) -> Optional[OriginResolution]:
    """
    Infer the CDN origin for a document.

    Args:
        document_text: Raw HTML
        base_reference: Result of base-reference extraction, if any
        known_origins: Knowledge base for the last strategy; None skips it
        document_id: File name, used as a knowledge-base identifier
        cdn_hosts: Hosts that count as CDN origins
        markers: Asset-root markers for truncation

    Returns:
        OriginResolution naming the origin and the strategy that found it,
        or None if every strategy failed
    """
    candidates = tally_candidates(document_text, cdn_hosts, markers)
    best = pick_candidate(candidates)
    if best is not None:
        return OriginResolution(
            origin=best.url_prefix,
            strategy=OriginStrategy.ABSOLUTE_VOTE,
            candidates=tuple(candidates),
        )

    decoded = base_reference.decoded_origin if base_reference else None
    if decoded and is_cdn_url(decoded, cdn_hosts):
        return OriginResolution(
            origin=normalize_origin(decoded),
            strategy=OriginStrategy.DECODED_BASE,
        )

    if known_origins is not None:
        raw_base = base_reference.raw_base if base_reference else None
        origin = known_origins.lookup([decoded, raw_base, document_id])
        if origin is not None:
            return OriginResolution(
                origin=origin,
                strategy=OriginStrategy.KNOWN_ORIGIN,
            )

    return None


def infer_origin(
    document_text: str,
    base_reference: Optional[ProxyBaseReference],
    known_origins: Optional[KnownOriginTable] = None,
    document_id: str = "",
) -> Optional[str]:
    """Same as infer(), returning only the origin URL."""
    resolution = infer(document_text, base_reference, known_origins, document_id)
    return resolution.origin if resolution else None
