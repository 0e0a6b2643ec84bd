"""
Filename sanitizer for submission titles.
"""

import re
import time
from typing import Optional

MAX_FILENAME_LENGTH = 150

# Characters rejected by Windows, macOS or Linux file systems, plus C0 controls / DEL
_ILLEGAL_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f\x7f]+')
_WHITESPACE = re.compile(r'\s+')


def fallback_name() -> str:
    """Name used when a title is missing: ``project-<unix millis>``."""
    return f"project-{int(time.time() * 1000)}"


def sanitize_title(title: Optional[str]) -> str:
    """
    Map an arbitrary title to a filesystem-safe name of at most 150 chars.

    Whitespace (including newlines and tabs) collapses to single spaces
    before illegal characters are removed, so ``"a\\nb"`` becomes ``"a b"``.
    The result is a fixed point: ``sanitize_title(sanitize_title(t)) ==
    sanitize_title(t)`` for any non-empty ``t``.
    """
    if not title:
        return fallback_name()

    name = _WHITESPACE.sub(' ', title)
    name = _ILLEGAL_CHARS.sub('', name)
    name = _WHITESPACE.sub(' ', name).strip()
    name = name[:MAX_FILENAME_LENGTH].rstrip()

    return name or fallback_name()
