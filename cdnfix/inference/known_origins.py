"""
Known-Origin Knowledge Base.

Last-resort lookup from identifier substrings (game names, repository
slugs) to CDN origins, for documents that carry no other origin evidence.

The table is injected into the inference engine rather than baked into
it, so it can be replaced or extended from a JSON file without touching
inference code.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional


# Origins confirmed by hand for documents with no usable base or
# absolute URLs. Matched case-insensitively, in this order.
DEFAULT_KNOWN_ORIGINS: dict[str, str] = {
    "geometry-dash": "https://cdn.jsdelivr.net/gh/ArsUnblocked/assets@main/geometrydashlite/",
    "geometrydashlite": "https://cdn.jsdelivr.net/gh/ArsUnblocked/assets@main/geometrydashlite/",
    "death-run": "https://cdn.jsdelivr.net/gh/3kh0/3kh0-lite@main/projects/death-run/",
    "death_run": "https://cdn.jsdelivr.net/gh/3kh0/3kh0-lite@main/projects/death-run/",
    "snowbattle": "https://cdn.jsdelivr.net/gh/3kh0/3kh0-lite@main/projects/snowbattle/",
    "bendy": "https://cdn.jsdelivr.net/gh/3kh0/3kh0-lite@main/projects/bendy/",
    "rerun": "https://cdn.jsdelivr.net/gh/gn-math/assets@main/260/",
    "slope": "https://cdn.jsdelivr.net/gh/gn-math/assets@main/198/",
    "ultrakill": "https://cdn.jsdelivr.net/gh/gn-math/assets@main/196/",
    "happywheels": "https://cdn.jsdelivr.net/gh/ArsUnblocked/assets@main/happywheels/",
}


class KnownOriginTable:
    """An ordered identifier -> origin mapping."""

    def __init__(self, entries: Optional[Mapping[str, str]] = None):
        self._entries: dict[str, str] = {}
        if entries:
            self.update(entries)

    @classmethod
    def default(cls) -> KnownOriginTable:
        """Table pre-loaded with DEFAULT_KNOWN_ORIGINS."""
        return cls(DEFAULT_KNOWN_ORIGINS)

    def update(self, entries: Mapping[str, str]) -> None:
        """Add or override entries. New keys go to the end of the table."""
        for key, origin in entries.items():
            key = key.strip().lower()
            if not key:
                continue
            self._entries[key] = origin if origin.endswith("/") else origin + "/"

    def lookup(self, identifiers: Iterable[Optional[str]]) -> Optional[str]:
        """
        Find the origin for the first table key contained in any identifier.

        Table order decides between keys; None identifiers are ignored.
        """
        haystacks = [ident.lower() for ident in identifiers if ident]
        if not haystacks:
            return None

        for key, origin in self._entries.items():
            if any(key in haystack for haystack in haystacks):
                return origin
        return None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._entries
