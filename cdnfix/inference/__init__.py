# Origin inference
"""
Infers the CDN origin a document's assets were served from.
"""
