# cdnfix
# Proxy-aware asset reference rewriter

"""
Repairs relative asset links in HTML documents that were saved through a
URL-rewriting proxy.

Each document's <base href> hides the real origin behind the proxy's XOR
codec. cdnfix decodes it, infers the CDN the assets came from, and turns
every relative asset reference into an absolute URL on that CDN.
"""

__version__ = "0.1.0"
