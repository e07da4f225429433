# Base-reference extraction
"""
Decodes the proxied <base href> of a document.
"""
