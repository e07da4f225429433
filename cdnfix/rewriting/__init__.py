# Reference rewriting
"""
Rewrites relative references into absolute CDN URLs.
"""
