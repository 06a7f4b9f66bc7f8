"""Drive link validation for public submissions.

Accepts only links to Google Drive files/folders and Google Docs editors
documents. The check is about shape, not reachability: the platform does not
control those hosts and never fetches the link.
"""
import re
from typing import Optional
from urllib.parse import urlsplit

DRIVE_HOST = "drive.google.com"
DOCS_HOST = "docs.google.com"

_DRIVE_PATH_PATTERNS = (
    re.compile(r"^/file/d/[^/]+"),
    re.compile(r"^/drive/folders/[^/]+"),
    re.compile(r"^/drive/u/\d+/folders/[^/]+"),
)
_DRIVE_ID_PATHS = {"/open", "/uc"}
_DOCS_PATH_PATTERN = re.compile(r"^/(document|spreadsheets|presentation|forms)/d/[^/]+")


def is_valid_external_link(link: Optional[str]) -> bool:
    """Return True when ``link`` is an https Drive/Docs resource URL. Never raises."""
    if not link or not isinstance(link, str):
        return False
    candidate = link.strip()
    if any(ch.isspace() for ch in candidate):
        return False
    try:
        parts = urlsplit(candidate)
        scheme = (parts.scheme or "").lower()
        host = (parts.hostname or "").lower()
    except ValueError:
        return False

    if scheme != "https" or not host:
        return False

    path = parts.path or ""
    query = parts.query or ""

    if host == DRIVE_HOST:
        if any(pattern.match(path) for pattern in _DRIVE_PATH_PATTERNS):
            return True
        return path in _DRIVE_ID_PATHS and "id=" in query

    if host == DOCS_HOST:
        return bool(_DOCS_PATH_PATTERN.match(path))

    return False
