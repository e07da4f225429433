"""
Tests for origin inference.

These tests verify:
1. Absolute CDN URLs vote for their truncated origin prefix
2. Ties keep the first candidate in document order
3. The decoded base is used when no absolute URLs exist
4. The known-origin table is an injectable last resort
"""

import pytest

from cdnfix.domain import OriginStrategy, ProxyBaseReference
from cdnfix.inference.known_origins import DEFAULT_KNOWN_ORIGINS, KnownOriginTable
from cdnfix.inference.origin import (
    infer,
    infer_origin,
    is_cdn_url,
    normalize_origin,
    pick_candidate,
    tally_candidates,
    truncate_at_marker,
)


def base_ref(decoded):
    return ProxyBaseReference(
        raw_base="/uv/service/encoded",
        is_proxy_wrapped=True,
        decoded_origin=decoded,
    )


JSDELIVR_DOC = """
<script src="https://cdn.jsdelivr.net/gh/x/y/Build/a.js"></script>
<script src="https://cdn.jsdelivr.net/gh/x/y/Build/b.js"></script>
<img src="https://cdn.jsdelivr.net/gh/x/y/image/c.png">
"""


# =============================================================================
# TRUNCATION TESTS
# =============================================================================

class TestTruncation:
    """Test cutting URLs at asset-root markers."""

    @pytest.mark.parametrize("url,expected", [
        ("https://cdn.jsdelivr.net/gh/x/y/Build/", "https://cdn.jsdelivr.net/gh/x/y/"),
        ("https://cdn.jsdelivr.net/gh/x/y/image/", "https://cdn.jsdelivr.net/gh/x/y/"),
        ("https://rawcdn.githack.com/o/r/main/TemplateData/", "https://rawcdn.githack.com/o/r/main/"),
        ("https://rawcdn.githack.com/o/r/main/", "https://rawcdn.githack.com/o/r/main/"),
    ])
    def test_truncate_at_marker(self, url, expected):
        """URLs should be cut just after the slash opening the marker."""
        assert truncate_at_marker(url) == expected

    def test_marker_list_order_wins(self):
        """An earlier marker in the list beats an earlier position in the URL."""
        url = "https://cdn.jsdelivr.net/gh/a/js/Build/"

        assert truncate_at_marker(url) == "https://cdn.jsdelivr.net/gh/a/js/"


# =============================================================================
# ABSOLUTE VOTE TESTS
# =============================================================================

class TestAbsoluteVote:
    """Test the majority vote over absolute CDN URLs."""

    def test_all_urls_share_origin(self):
        """Build/ and image/ URLs under one repo should vote together."""
        resolution = infer(JSDELIVR_DOC, None)

        assert resolution.origin == "https://cdn.jsdelivr.net/gh/x/y/"
        assert resolution.strategy == OriginStrategy.ABSOLUTE_VOTE
        assert len(resolution.candidates) == 1
        assert resolution.candidates[0].vote_count == 3

    def test_majority_wins(self):
        """The prefix with more votes should win even if seen later."""
        doc = (
            '<img src="https://rawcdn.githack.com/a/a/main/image/x.png">'
            '<script src="https://cdn.jsdelivr.net/gh/b/b/Build/1.js"></script>'
            '<script src="https://cdn.jsdelivr.net/gh/b/b/Build/2.js"></script>'
        )

        assert infer_origin(doc, None) == "https://cdn.jsdelivr.net/gh/b/b/"

    def test_tie_keeps_first_seen(self):
        """Equal votes should resolve to document order."""
        first = '<script src="https://rawcdn.githack.com/a/a/main/Build/x.js"></script>'
        second = '<script src="https://cdn.jsdelivr.net/gh/b/b/Build/y.js"></script>'

        assert infer_origin(first + second, None) == "https://rawcdn.githack.com/a/a/main/"
        assert infer_origin(second + first, None) == "https://cdn.jsdelivr.net/gh/b/b/"

    def test_raw_githubusercontent_counts(self):
        """raw.githubusercontent.com is a CDN host."""
        doc = '<link href="https://raw.githubusercontent.com/o/r/main/css/s.css">'

        assert infer_origin(doc, None) == "https://raw.githubusercontent.com/o/r/main/"

    def test_non_cdn_urls_ignored(self):
        """Absolute URLs on other hosts should not vote."""
        doc = '<script src="https://example.com/lib/Build/x.js"></script>'

        assert tally_candidates(doc) == []
        assert infer(doc, None) is None

    def test_absolute_vote_beats_decoded_base(self):
        """Strategy 1 should win over the decoded base."""
        resolution = infer(JSDELIVR_DOC, base_ref("rawcdn.githack.com/other/repo/main/"))

        assert resolution.strategy == OriginStrategy.ABSOLUTE_VOTE

    def test_tally_order(self):
        """Candidates should come back in first-seen order."""
        doc = (
            "https://cdn.jsdelivr.net/gh/b/b/Build/1.js "
            "https://rawcdn.githack.com/a/a/main/Build/2.js "
            "https://cdn.jsdelivr.net/gh/b/b/Build/3.js"
        )

        candidates = tally_candidates(doc)

        assert [c.url_prefix for c in candidates] == [
            "https://cdn.jsdelivr.net/gh/b/b/",
            "https://rawcdn.githack.com/a/a/main/",
        ]
        assert [c.vote_count for c in candidates] == [2, 1]

    def test_pick_candidate_empty(self):
        """No candidates should pick nothing."""
        assert pick_candidate([]) is None


# =============================================================================
# DECODED BASE TESTS
# =============================================================================

class TestDecodedBase:
    """Test falling back to the decoded base URL."""

    def test_scheme_added(self):
        """A schemeless CDN base should get https:// added."""
        resolution = infer("<p>no urls</p>", base_ref("rawcdn.githack.com/org/repo/main/"))

        assert resolution.origin == "https://rawcdn.githack.com/org/repo/main/"
        assert resolution.strategy == OriginStrategy.DECODED_BASE

    def test_trailing_slash_added(self):
        """The origin should always end in exactly one slash."""
        resolution = infer("", base_ref("https://cdn.jsdelivr.net/gh/o/r@main/game"))

        assert resolution.origin == "https://cdn.jsdelivr.net/gh/o/r@main/game/"

    def test_non_cdn_base_fails(self):
        """A decoded base on an ordinary host cannot be used."""
        assert infer("", base_ref("https://example.com/game/")) is None

    def test_undecodable_base_fails(self):
        """No decoded origin and no absolute URLs means no origin."""
        assert infer("", base_ref(None)) is None

    @pytest.mark.parametrize("url,expected", [
        ("cdn.jsdelivr.net/gh/a/b/", "https://cdn.jsdelivr.net/gh/a/b/"),
        ("//cdn.jsdelivr.net/gh/a/b", "https://cdn.jsdelivr.net/gh/a/b/"),
        ("https://cdn.jsdelivr.net/gh/a/b//", "https://cdn.jsdelivr.net/gh/a/b/"),
    ])
    def test_normalize_origin(self, url, expected):
        """Origins should be normalized to https with one trailing slash."""
        assert normalize_origin(url) == expected

    def test_is_cdn_url(self):
        """CDN detection should use host names."""
        assert is_cdn_url("https://cdn.jsdelivr.net/npm/x/")
        assert not is_cdn_url("https://example.com/")


# =============================================================================
# KNOWN ORIGIN TESTS
# =============================================================================

class TestKnownOrigins:
    """Test the injectable known-origin knowledge base."""

    def test_lookup_by_document_id(self):
        """A document ID containing a key should resolve to its origin."""
        table = KnownOriginTable({"slope": "https://cdn.jsdelivr.net/gh/gn-math/assets@main/198"})

        resolution = infer("", base_ref("https://example.com/x/"), table, "Slope-Game.html")

        assert resolution.origin == "https://cdn.jsdelivr.net/gh/gn-math/assets@main/198/"
        assert resolution.strategy == OriginStrategy.KNOWN_ORIGIN

    def test_lookup_by_decoded_origin(self):
        """The decoded base should be searched too."""
        table = KnownOriginTable({"bendy": "https://cdn.example.net/bendy/"})

        resolution = infer("", base_ref("https://games.example.com/bendy/"), table, "123.html")

        assert resolution.origin == "https://cdn.example.net/bendy/"

    def test_no_table_disables_strategy(self):
        """Without a table, the last strategy is skipped."""
        assert infer("", base_ref("https://example.com/slope/"), None, "slope.html") is None

    def test_decoded_base_beats_table(self):
        """Strategy 2 should win over the knowledge base."""
        table = KnownOriginTable({"slope": "https://cdn.example.net/slope/"})

        resolution = infer("", base_ref("rawcdn.githack.com/o/slope/main/"), table, "slope.html")

        assert resolution.strategy == OriginStrategy.DECODED_BASE

    def test_table_order_decides(self):
        """When several keys match, the earlier entry wins."""
        table = KnownOriginTable({
            "death-run": "https://one.example/",
            "run": "https://two.example/",
        })

        assert table.lookup(["death-run-3d.html"]) == "https://one.example/"

    def test_lookup_is_case_insensitive(self):
        """Keys and identifiers should match regardless of case."""
        table = KnownOriginTable({"HappyWheels": "https://cdn.example.net/hw/"})

        assert table.lookup([None, "HAPPYWHEELS.html"]) == "https://cdn.example.net/hw/"
        assert "happywheels" in table

    def test_lookup_ignores_missing_identifiers(self):
        """None identifiers should be skipped."""
        assert KnownOriginTable.default().lookup([None, None]) is None

    def test_update_extends_table(self):
        """update() should add entries without touching the defaults."""
        table = KnownOriginTable.default()
        table.update({"newgame": "https://cdn.example.net/newgame"})

        assert len(table) == len(DEFAULT_KNOWN_ORIGINS) + 1
        assert table.lookup(["newgame.html"]) == "https://cdn.example.net/newgame/"
