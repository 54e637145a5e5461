"""Small shared helpers: stderr logging and byte formatting."""

from __future__ import annotations

import sys


def log(message: str) -> None:
    """Log a message to stderr."""
    print(message, file=sys.stderr, flush=True)


def format_bytes(size: float) -> str:
    """Format byte size for human readability."""
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} PB"
