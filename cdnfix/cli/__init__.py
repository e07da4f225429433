# CLI package for cdnfix
"""
Batch orchestration and command-line interface.

Commands:
    cdnfix fix      — Rewrite a directory of documents
    cdnfix explain  — Trace the pipeline for one document
    cdnfix decode   — Decode a proxied URL
    cdnfix encode   — Encode a URL for the proxy
"""
