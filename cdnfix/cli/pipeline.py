"""
Batch Orchestrator for the cdnfix rewriter.

Runs the rewrite pipeline over a corpus of HTML documents.

Pipeline stages, per document:
    1. Base-reference extraction  — skip documents the proxy never wrapped
    2. Relative reference scan    — skip documents with nothing to rewrite
    3. Origin inference           — unfixable if no origin can be named
    4. Rewrite                    — fixed if the text changed, else unchanged

Documents are independent. A failure on one is recorded in the report
and never stops the batch. Only a missing corpus root is fatal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Union

from ..config import RewriteConfig
from ..domain import (
    Document,
    DocumentOutcome,
    OutcomeReason,
    OutcomeStatus,
    PipelineHalt,
)
from ..extraction.base_href import extract
from ..inference.known_origins import KnownOriginTable
from ..inference.origin import infer
from ..rewriting.rewriter import rewrite
from ..scanning.references import scan, unique_paths

logger = logging.getLogger(__name__)


class CorpusError(Exception):
    """Raised when the corpus root cannot be read at all."""
    pass


# =============================================================================
# BATCH REPORT
# =============================================================================

@dataclass
class BatchReport:
    """
    Complete result of a batch run.

    Exposes:
    - Every per-document outcome, in processing order
    - Views and counts per outcome status
    """
    outcomes: list[DocumentOutcome] = field(default_factory=list)
    dry_run: bool = False
    directory: Optional[Path] = None

    def _with_status(self, status: OutcomeStatus) -> list[DocumentOutcome]:
        return [o for o in self.outcomes if o.status is status]

    @property
    def fixed(self) -> list[DocumentOutcome]:
        return self._with_status(OutcomeStatus.FIXED)

    @property
    def unfixable(self) -> list[DocumentOutcome]:
        return self._with_status(OutcomeStatus.UNFIXABLE)

    @property
    def skipped(self) -> list[DocumentOutcome]:
        return self._with_status(OutcomeStatus.SKIPPED)

    @property
    def unchanged(self) -> list[DocumentOutcome]:
        return self._with_status(OutcomeStatus.UNCHANGED)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def total_changes(self) -> int:
        return sum(o.change_count for o in self.outcomes)

    def counts(self) -> dict[OutcomeStatus, int]:
        """Number of documents per status, every status present."""
        counts = {status: 0 for status in OutcomeStatus}
        for outcome in self.outcomes:
            counts[outcome.status] += 1
        return counts

    def get_outcome(self, document_id: str) -> Optional[DocumentOutcome]:
        """Find the outcome for a document by its ID."""
        for outcome in self.outcomes:
            if outcome.document_id == document_id:
                return outcome
        return None


# =============================================================================
# CORPUS ACCESS
# =============================================================================

def find_documents(directory: Path, extension: str = ".html") -> list[Path]:
    """
    List corpus documents by extension, sorted by file name.

    Raises:
        CorpusError: If the directory does not exist or cannot be listed
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise CorpusError(f"Target directory not found: {directory}")

    try:
        entries = list(directory.iterdir())
    except OSError as e:
        raise CorpusError(f"Cannot list {directory}: {e}")

    return sorted(
        (p for p in entries if p.is_file() and p.name.endswith(extension)),
        key=lambda p: p.name,
    )


def read_document(path: Path) -> Document:
    """
    Read a document as UTF-8, falling back to Latin-1.

    Bytes are decoded directly so line endings are kept as they are on disk.
    """
    path = Path(path)
    data = path.read_bytes()
    try:
        text, encoding = data.decode("utf-8"), "utf-8"
    except UnicodeDecodeError:
        text, encoding = data.decode("latin-1"), "latin-1"
    return Document(document_id=path.name, text=text, path=path, encoding=encoding)


def write_document(document: Document, text: str) -> None:
    """Persist rewritten text in place of the original, in its encoding."""
    if document.path is None:
        raise OSError(f"{document.document_id} has no path to write to")
    document.path.write_bytes(text.encode(document.encoding))


# =============================================================================
# PIPELINE EXECUTION
# =============================================================================

def _known_origin_table(config: RewriteConfig) -> Optional[KnownOriginTable]:
    if config.known_origins is None:
        return None
    return KnownOriginTable(config.known_origins)


def process_document(
    document: Document,
    config: Optional[RewriteConfig] = None,
    known_origins: Optional[KnownOriginTable] = None,
) -> tuple[DocumentOutcome, Optional[str]]:
    """
    Run the pipeline on one document's text.

    Nothing is written here. The caller decides whether to persist.

    Args:
        document: The document to process
        config: Run settings (defaults if None)
        known_origins: Knowledge base; built from config when None

    Returns:
        (outcome, new_text). new_text is only set for FIXED outcomes.
    """
    if config is None:
        config = RewriteConfig()
    if known_origins is None:
        known_origins = _known_origin_table(config)

    try:
        # STAGE 1: base reference
        base = extract(document.text, config.proxy_prefixes)
        if base is None:
            raise PipelineHalt(OutcomeStatus.SKIPPED, OutcomeReason.NO_PROXY_BASE)

        # STAGE 2: relative references
        references = scan(document.text)
        if not references:
            raise PipelineHalt(
                OutcomeStatus.SKIPPED,
                OutcomeReason.NO_RELATIVE_PATHS,
                decoded_origin=base.decoded_origin,
            )
        paths = unique_paths(references)

        # STAGE 3: origin
        resolution = infer(
            document.text,
            base,
            known_origins=known_origins,
            document_id=document.document_id,
        )
        if resolution is None:
            raise PipelineHalt(
                OutcomeStatus.UNFIXABLE,
                OutcomeReason.NO_ORIGIN_FOUND,
                paths=paths,
                decoded_origin=base.decoded_origin,
            )

        # STAGE 4: rewrite
        result = rewrite(document.text, resolution.origin, references)

    except PipelineHalt as halt:
        logger.debug("%s: %s", document.document_id, halt)
        return DocumentOutcome.from_halt(document.document_id, halt), None

    if result.change_count == 0:
        logger.debug("%s: references found but nothing changed", document.document_id)
        return DocumentOutcome(
            document_id=document.document_id,
            status=OutcomeStatus.UNCHANGED,
            origin=resolution.origin,
            strategy=resolution.strategy,
            paths=paths,
            decoded_origin=base.decoded_origin,
        ), None

    logger.debug(
        "%s: %d change(s) via %s -> %s",
        document.document_id,
        result.change_count,
        resolution.strategy.value,
        resolution.origin,
    )
    return DocumentOutcome(
        document_id=document.document_id,
        status=OutcomeStatus.FIXED,
        change_count=result.change_count,
        origin=resolution.origin,
        strategy=resolution.strategy,
        paths=paths,
        decoded_origin=base.decoded_origin,
    ), result.text


def _failure(document_id: str, reason: OutcomeReason, error: Exception) -> DocumentOutcome:
    return DocumentOutcome(
        document_id=document_id,
        status=OutcomeStatus.UNFIXABLE,
        reason=reason,
        detail=str(error),
    )


def process_corpus(
    documents: Iterable[Union[Path, Document]],
    dry_run: bool = False,
    config: Optional[RewriteConfig] = None,
) -> BatchReport:
    """
    Run the pipeline over every document and collect a report.

    Args:
        documents: Paths to read, or already loaded Documents
        dry_run: Report only; never write rewritten text back
        config: Run settings (defaults if None)

    Returns:
        BatchReport with one outcome per document
    """
    if config is None:
        config = RewriteConfig()
    known_origins = _known_origin_table(config)
    report = BatchReport(dry_run=dry_run)

    for item in documents:
        if isinstance(item, Document):
            document = item
        else:
            try:
                document = read_document(item)
            except OSError as e:
                logger.warning("Cannot read %s: %s", item, e)
                report.outcomes.append(
                    _failure(Path(item).name, OutcomeReason.UNREADABLE, e)
                )
                continue

        outcome, new_text = process_document(document, config, known_origins)

        if new_text is not None and not dry_run:
            try:
                write_document(document, new_text)
            except (OSError, UnicodeEncodeError) as e:
                logger.warning("Cannot write %s: %s", document.document_id, e)
                outcome = _failure(document.document_id, OutcomeReason.WRITE_FAILED, e)
            else:
                logger.info("Rewrote %s (%d change(s))", document.document_id, outcome.change_count)

        report.outcomes.append(outcome)

    return report


def run_directory(
    directory: Path,
    dry_run: bool = False,
    config: Optional[RewriteConfig] = None,
) -> BatchReport:
    """
    Process every matching document in a directory.

    Raises:
        CorpusError: If the directory cannot be read
    """
    if config is None:
        config = RewriteConfig()

    paths = find_documents(directory, config.extension)
    logger.debug("Found %d document(s) in %s", len(paths), directory)

    report = process_corpus(paths, dry_run=dry_run, config=config)
    report.directory = Path(directory)
    return report
