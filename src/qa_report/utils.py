"""
QA Report Utilities

Filename slugs and idempotent file writes.
"""

import re
from pathlib import Path

ILLEGAL_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')


def slugify(value: str) -> str:
    """Convert a label to a safe, lowercase, dash-separated filename stem."""
    safe = ILLEGAL_FILENAME_CHARS.sub("", value.strip())
    safe = re.sub(r"\s+", "-", safe.strip())
    safe = re.sub(r"-+", "-", safe)
    return safe.lower() or "report"


def write_file_if_changed(path: Path, content: str) -> bool:
    """Write content to path unless the file already holds exactly that content.

    Args:
        path: Target file
        content: Text to write (UTF-8)

    Returns:
        True if the file was written, False if it was already up to date.
    """
    path = Path(path)
    data = content.encode("utf-8")
    try:
        existing = path.read_bytes()
    except FileNotFoundError:
        existing = None

    if existing == data:
        return False

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return True
