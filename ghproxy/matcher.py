"""
Classification of GitHub resource URLs.

A path (with or without ``http(s)://``) is checked against six URL shapes.
Owner and repository segments are matched non-greedily and are not validated,
the patterns only decide routing.
"""

import re
from enum import Enum

_SCHEME = r"^(?:https?://)?"

RELEASES_OR_ARCHIVE = re.compile(
    _SCHEME + r"github\.com/.+?/.+?/(?:releases|archive)/.*$", re.IGNORECASE
)
BLOB_OR_RAW = re.compile(
    _SCHEME + r"github\.com/.+?/.+?/(?:blob|raw)/.*$", re.IGNORECASE
)
INFO_OR_GIT = re.compile(
    _SCHEME + r"github\.com/.+?/.+?/(?:info|git-).*$", re.IGNORECASE
)
RAW_CONTENT_HOST = re.compile(
    _SCHEME + r"raw\.(?:githubusercontent|github)\.com/.+?/.+?/.+?/.+$",
    re.IGNORECASE,
)
GIST_HOST = re.compile(
    _SCHEME + r"gist\.(?:githubusercontent|github)\.com/.+?/.+?/.+$",
    re.IGNORECASE,
)
TAGS = re.compile(_SCHEME + r"github\.com/.+?/.+?/tags.*$", re.IGNORECASE)

# Shapes that are fetched as-is
DIRECT_PATTERNS = (RELEASES_OR_ARCHIVE, INFO_OR_GIT, RAW_CONTENT_HOST, GIST_HOST, TAGS)
ALL_PATTERNS = DIRECT_PATTERNS + (BLOB_OR_RAW,)


class Classification(str, Enum):
    RAW_REWRITE = "raw-rewrite"
    PROXYABLE = "proxyable"
    UNMATCHED = "unmatched"


def classify(path: str) -> Classification:
    """
    Classify a target path.

    The direct shapes win over blob/raw, so a blob URL that also looks like a
    release URL is proxied without the raw rewrite.
    """
    if any(pattern.match(path) for pattern in DIRECT_PATTERNS):
        return Classification.PROXYABLE
    if BLOB_OR_RAW.match(path):
        return Classification.RAW_REWRITE
    return Classification.UNMATCHED


def is_github_resource(url: str) -> bool:
    """True when ``url`` matches any of the six shapes, blob/raw included."""
    return any(pattern.match(url) for pattern in ALL_PATTERNS)
