"""
Core Domain Objects for the cdnfix rewriter.

Domain Objects:
    Document            — One HTML file and its text
    ProxyBaseReference  — The proxied <base href> and its decoded origin
    CandidateOrigin     — A tallied origin prefix found in the document
    OriginResolution    — The origin chosen for a document and why
    RelativeReference   — A relative asset path and the markup carrying it
    DocumentOutcome     — The classified result of one pipeline run
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


# =============================================================================
# DOCUMENT
# =============================================================================

@dataclass
class Document:
    """
    An HTML document as read from the corpus.

    Only the rewriter produces new text for a document; everything else
    reads it. `encoding` is the one the file was decoded with and is
    used again when writing it back.
    """
    document_id: str
    text: str
    path: Optional[Path] = None
    encoding: str = "utf-8"


# =============================================================================
# BASE REFERENCE & ORIGINS
# =============================================================================

@dataclass(frozen=True)
class ProxyBaseReference:
    """
    The document's declared base URL.

    decoded_origin is None when the encoded part could not be decoded;
    the pipeline keeps going without it.
    """
    raw_base: str
    is_proxy_wrapped: bool
    decoded_origin: Optional[str] = None


@dataclass
class CandidateOrigin:
    """An origin prefix and how many absolute URLs in the document vote for it."""
    url_prefix: str
    vote_count: int = 0


class OriginStrategy(Enum):
    """How an origin was inferred, in the order strategies are tried."""
    ABSOLUTE_VOTE = "absolute_vote"
    DECODED_BASE = "decoded_base"
    KNOWN_ORIGIN = "known_origin"


@dataclass(frozen=True)
class OriginResolution:
    """The origin inferred for a document."""
    origin: str
    strategy: OriginStrategy
    candidates: tuple[CandidateOrigin, ...] = ()


# =============================================================================
# RELATIVE REFERENCES
# =============================================================================

class ConstructKind(Enum):
    """Markup constructs that can carry an asset path."""
    SCRIPT = "script"
    CSS = "css"
    IMG = "img"
    MEDIA = "media"
    SOURCE = "source"
    LOADER = "loader"


@dataclass(frozen=True)
class RelativeReference:
    """
    A relative asset path found in the document.

    path never starts with a scheme, '//', '/', or '#'.
    """
    raw_match: str
    path: str
    construct_kind: ConstructKind


# =============================================================================
# OUTCOMES
# =============================================================================

class OutcomeStatus(Enum):
    """Classification of a document after one pipeline run."""
    FIXED = "fixed"
    UNFIXABLE = "unfixable"
    SKIPPED = "skipped"
    UNCHANGED = "unchanged"


class OutcomeReason(Enum):
    """
    Why a document was not fixed.

    NO_PROXY_BASE:     no <base> under a proxy prefix, out of scope
    NO_RELATIVE_PATHS: nothing left to rewrite
    NO_ORIGIN_FOUND:   no strategy could name a CDN origin
    UNREADABLE:        the file could not be read
    WRITE_FAILED:      the rewritten text could not be saved
    """
    NO_PROXY_BASE = "no-proxy-base"
    NO_RELATIVE_PATHS = "no-relative-paths"
    NO_ORIGIN_FOUND = "no-origin-found"
    UNREADABLE = "unreadable"
    WRITE_FAILED = "write-failed"


class PipelineHalt(Exception):
    """Stops the pipeline for one document with a classified outcome."""

    def __init__(
        self,
        status: OutcomeStatus,
        reason: OutcomeReason,
        paths: tuple[str, ...] = (),
        decoded_origin: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        self.status = status
        self.reason = reason
        self.paths = paths
        self.decoded_origin = decoded_origin
        self.detail = detail
        super().__init__(f"[{status.value}] {reason.value}")


@dataclass(frozen=True)
class DocumentOutcome:
    """
    The result of running the pipeline on one document.

    FIXED is only ever assigned when at least one substitution changed
    the text. Finding references without changing anything is UNCHANGED.
    """
    document_id: str
    status: OutcomeStatus
    reason: Optional[OutcomeReason] = None
    change_count: int = 0
    origin: Optional[str] = None
    strategy: Optional[OriginStrategy] = None
    paths: tuple[str, ...] = field(default_factory=tuple)
    decoded_origin: Optional[str] = None
    detail: Optional[str] = None

    @classmethod
    def from_halt(cls, document_id: str, halt: PipelineHalt) -> DocumentOutcome:
        """Create an outcome from a PipelineHalt."""
        return cls(
            document_id=document_id,
            status=halt.status,
            reason=halt.reason,
            paths=halt.paths,
            decoded_origin=halt.decoded_origin,
            detail=halt.detail,
        )
