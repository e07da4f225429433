"""
cdnfix CLI — batch repair of proxied asset links.

Commands:
    cdnfix fix <dir>          — Rewrite every document in a directory
    cdnfix explain <file>     — Trace the pipeline for one document
    cdnfix decode <value>     — Decode a proxied URL
    cdnfix encode <url>       — Encode a URL the way the proxy does

Unfixable documents are a reported condition, not a failure: `fix` exits
0 unless the corpus directory (or a known-origins file) cannot be read.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from ..codec import decode, encode
from ..config import (
    DEFAULT_EXTENSION,
    DEFAULT_PROXY_PREFIXES,
    ConfigError,
    RewriteConfig,
    load_known_origins,
)
from ..domain import DocumentOutcome, OutcomeStatus
from ..extraction.base_href import extract, strip_proxy_prefix
from ..inference.known_origins import DEFAULT_KNOWN_ORIGINS, KnownOriginTable
from ..inference.origin import infer, tally_candidates
from ..scanning.references import scan
from .pipeline import (
    BatchReport,
    CorpusError,
    process_document,
    read_document,
    run_directory,
)

RULE = "=" * 70
THIN_RULE = "-" * 70


# =============================================================================
# OUTPUT FORMATTING
# =============================================================================

def format_paths(paths: Sequence[str], limit: int) -> str:
    """Comma-join paths, eliding past limit."""
    shown = ", ".join(paths[:limit])
    if len(paths) > limit:
        shown += "..."
    return shown


def format_outcome_row(outcome: DocumentOutcome) -> str:
    """Format a single outcome for its report section."""
    if outcome.status is OutcomeStatus.FIXED:
        return f"  {outcome.document_id}: {outcome.change_count} path(s) fixed"
    if outcome.reason is not None:
        return f"  {outcome.document_id} ({outcome.reason.value})"
    return f"  {outcome.document_id}"


def format_outcome_details(outcome: DocumentOutcome) -> list[str]:
    """Verbose evidence lines for an outcome."""
    lines = []
    if outcome.status is OutcomeStatus.FIXED or outcome.status is OutcomeStatus.UNCHANGED:
        lines.append(f"    Origin: {outcome.origin}")
        if outcome.strategy is not None:
            lines.append(f"    Strategy: {outcome.strategy.value}")
        lines.append(f"    Paths: {format_paths(outcome.paths, 5)}")
    elif outcome.status is OutcomeStatus.UNFIXABLE:
        if outcome.detail:
            lines.append(f"    Error: {outcome.detail}")
        else:
            lines.append(f"    Decoded URL: {outcome.decoded_origin or 'Could not decode'}")
            lines.append(f"    Relative paths: {format_paths(outcome.paths, 3)}")
    return lines


SECTIONS = (
    (OutcomeStatus.FIXED, "FIXED"),
    (OutcomeStatus.UNFIXABLE, "UNFIXABLE (need manual origin lookup)"),
    (OutcomeStatus.SKIPPED, "SKIPPED"),
    (OutcomeStatus.UNCHANGED, "UNCHANGED"),
)


def format_report(report: BatchReport, verbose: bool = False) -> str:
    """Format the full batch report."""
    counts = report.counts()
    lines = [
        RULE,
        "RESULTS SUMMARY",
        RULE,
        "",
        f"Total documents processed: {report.total}",
        f"  Fixed:     {counts[OutcomeStatus.FIXED]} ({report.total_changes} change(s))",
        f"  Unfixable: {counts[OutcomeStatus.UNFIXABLE]}",
        f"  Skipped:   {counts[OutcomeStatus.SKIPPED]}",
        f"  Unchanged: {counts[OutcomeStatus.UNCHANGED]}",
        "",
    ]

    for status, title in SECTIONS:
        outcomes = [o for o in report.outcomes if o.status is status]
        if not outcomes:
            continue
        lines.append(THIN_RULE)
        lines.append(f"{title}: {len(outcomes)}")
        lines.append(THIN_RULE)
        for outcome in outcomes:
            lines.append(format_outcome_row(outcome))
            if verbose:
                lines.extend(format_outcome_details(outcome))
        lines.append("")

    if report.unfixable:
        lines.append("Add origins for unfixable documents with --known-origins.")

    if report.dry_run:
        lines.append(RULE)
        lines.append("This was a DRY RUN. Run without --dry-run to apply changes.")
        lines.append(RULE)

    return "\n".join(lines)


# =============================================================================
# CLI COMMANDS
# =============================================================================

def build_config(args: argparse.Namespace) -> RewriteConfig:
    """
    Build run settings from parsed arguments.

    Raises:
        ConfigError: If the known-origins file cannot be loaded
    """
    known_origins: Optional[dict[str, str]] = None
    if not args.no_known_origins:
        known_origins = dict(DEFAULT_KNOWN_ORIGINS)
        if args.known_origins is not None:
            known_origins.update(load_known_origins(args.known_origins))

    return RewriteConfig(
        proxy_prefixes=tuple(args.proxy_prefix or DEFAULT_PROXY_PREFIXES),
        extension=args.ext,
        known_origins=known_origins,
    )


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def cmd_fix(args: argparse.Namespace) -> int:
    """Rewrite every document in a directory."""
    configure_logging(args.verbose)

    try:
        config = build_config(args)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print(RULE)
    print("CDNFIX ASSET REWRITE")
    print(RULE)
    if args.dry_run:
        print("Mode: DRY RUN (no changes will be made)")
    else:
        print("Mode: LIVE (files will be modified)")
    print(f"Directory: {args.directory}")
    print()

    try:
        report = run_directory(args.directory, dry_run=args.dry_run, config=config)
    except CorpusError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print(format_report(report, verbose=args.verbose))
    return 0


def cmd_explain(args: argparse.Namespace) -> int:
    """Show how the pipeline sees one document. Never writes."""
    try:
        config = build_config(args)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    try:
        document = read_document(args.file)
    except OSError as e:
        print(f"ERROR: Cannot read {args.file}: {e}", file=sys.stderr)
        return 1

    table = None
    if config.known_origins is not None:
        table = KnownOriginTable(config.known_origins)

    print(f"cdnfix — Explanation for: {document.document_id}")
    print("=" * 50)
    print()

    base = extract(document.text, config.proxy_prefixes)
    print("BASE REFERENCE:")
    if base is None:
        print("  No proxied <base href> found")
    else:
        print(f"  • Raw: {base.raw_base}")
        print(f"  • Decoded: {base.decoded_origin or 'Could not decode'}")
    print()

    print("ORIGIN CANDIDATES:")
    candidates = tally_candidates(document.text)
    if not candidates:
        print("  No absolute CDN URLs in document")
    for candidate in candidates:
        print(f"  • {candidate.url_prefix} ({candidate.vote_count} vote(s))")
    print()

    resolution = infer(document.text, base, table, document.document_id)
    print("ORIGIN:")
    if resolution is None:
        print("  Could not infer an origin")
    else:
        print(f"  • {resolution.origin}")
        print(f"    Strategy: {resolution.strategy.value}")
    print()

    print("RELATIVE REFERENCES:")
    references = scan(document.text)
    if not references:
        print("  None")
    for ref in references:
        print(f"  • [{ref.construct_kind.value}] {ref.path}")
    print()

    outcome, _ = process_document(document, config, table)
    line = f"OUTCOME: {outcome.status.value}"
    if outcome.reason is not None:
        line += f" ({outcome.reason.value})"
    elif outcome.change_count:
        line += f" ({outcome.change_count} change(s))"
    print(line)

    return 0


def cmd_decode(args: argparse.Namespace) -> int:
    """Decode a proxied URL, with or without its proxy prefix."""
    value = strip_proxy_prefix(args.value)
    if value is None:
        value = args.value
    decoded = decode(value)
    if decoded is None:
        print(f"ERROR: Could not decode {args.value}", file=sys.stderr)
        return 1
    print(decoded)
    return 0


def cmd_encode(args: argparse.Namespace) -> int:
    """Encode a URL for the proxy."""
    print(encode(args.value))
    return 0


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def _add_origin_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--proxy-prefix",
        action="append",
        default=None,
        metavar="PREFIX",
        help="Proxy mount point before the encoded URL (repeatable; "
             f"default: {', '.join(DEFAULT_PROXY_PREFIXES)})",
    )
    parser.add_argument(
        "--known-origins",
        type=Path,
        default=None,
        metavar="FILE",
        help="JSON object of identifier -> origin added to the known-origin table",
    )
    parser.add_argument(
        "--no-known-origins",
        action="store_true",
        help="Do not fall back to the known-origin table",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="cdnfix",
        description="Rewrite relative asset links in proxied HTML to absolute CDN URLs",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
    )

    # Fix command
    fix_parser = subparsers.add_parser(
        "fix",
        help="Rewrite every document in a directory",
    )
    fix_parser.add_argument(
        "directory",
        type=Path,
        help="Directory of HTML documents",
    )
    fix_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without writing files",
    )
    fix_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show origins, paths and evidence per document",
    )
    fix_parser.add_argument(
        "--ext",
        default=DEFAULT_EXTENSION,
        help=f"File extension to process (default: {DEFAULT_EXTENSION})",
    )
    _add_origin_arguments(fix_parser)
    fix_parser.set_defaults(func=cmd_fix)

    # Explain command
    explain_parser = subparsers.add_parser(
        "explain",
        help="Trace the pipeline for one document",
    )
    explain_parser.add_argument(
        "file",
        type=Path,
        help="HTML document to explain",
    )
    _add_origin_arguments(explain_parser)
    explain_parser.set_defaults(func=cmd_explain, ext=DEFAULT_EXTENSION)

    # Decode command
    decode_parser = subparsers.add_parser(
        "decode",
        help="Decode a proxied URL",
    )
    decode_parser.add_argument("value", help="Encoded URL, optionally with its proxy prefix")
    decode_parser.set_defaults(func=cmd_decode)

    # Encode command
    encode_parser = subparsers.add_parser(
        "encode",
        help="Encode a URL the way the proxy does",
    )
    encode_parser.add_argument("value", help="URL to encode")
    encode_parser.set_defaults(func=cmd_encode)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
