"""
Configuration for the cdnfix rewriter.

Every tunable of the pipeline lives here as a module constant. Components
take these as keyword defaults, and the CLI overrides them through
RewriteConfig.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================

# Mount points the URL-rewriting proxy puts in front of encoded URLs
DEFAULT_PROXY_PREFIXES: tuple[str, ...] = ("/uv/service/", "/service/")

# Per-character XOR key used by the proxy's URL codec
XOR_KEY = 2

# Hosts that serve repository files directly; only these count as origins
CDN_HOSTS: tuple[str, ...] = (
    "rawcdn.githack.com",
    "cdn.jsdelivr.net/gh",
    "raw.githubusercontent.com",
)

# Path segments where an asset URL stops being part of the origin.
# Order matters: the first marker found in a URL wins.
ASSET_ROOT_MARKERS: tuple[str, ...] = (
    "/Build/",
    "/image/",
    "/js/",
    "/css/",
    "/themes/",
    "/TemplateData/",
    "/assets/",
)

DEFAULT_EXTENSION = ".html"


class ConfigError(Exception):
    """Raised when a configuration file cannot be loaded."""
    pass


@dataclass
class RewriteConfig:
    """Settings for one batch run."""

    proxy_prefixes: tuple[str, ...] = DEFAULT_PROXY_PREFIXES
    extension: str = DEFAULT_EXTENSION
    # Identifier substring -> origin. None disables the lookup strategy.
    known_origins: Optional[dict[str, str]] = field(default=None)


def load_known_origins(path: Path) -> dict[str, str]:
    """
    Load a known-origin table from a JSON file.

    The file must hold a single object mapping identifier substrings
    (game names, repository slugs) to CDN origin URLs.

    Raises:
        ConfigError: If the file is unreadable or not a string mapping
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read known-origins file {path}: {e}")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a JSON object")

    for key, value in data.items():
        if not isinstance(value, str) or not value:
            raise ConfigError(f"Origin for '{key}' must be a non-empty string")

    return dict(data)
