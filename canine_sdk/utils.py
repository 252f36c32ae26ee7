"""
Utility functions for the Canine SDK.
"""

from typing import Dict

from canine_sdk.models import FileMeta


def format_size(size_bytes: int) -> str:
    """
    Format a size in bytes to a human-readable string.

    Args:
        size_bytes: Size in bytes

    Returns:
        str: Human-readable size string (e.g., '1.23 MB', '456.78 KB')
    """
    if size_bytes >= 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024 * 1024):.2f} GB"
    elif size_bytes >= 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.2f} MB"
    elif size_bytes >= 1024:
        return f"{size_bytes / 1024:.2f} KB"
    else:
        return f"{size_bytes} bytes"


def total_size(file_children: Dict[str, FileMeta]) -> int:
    return sum(meta.size for meta in file_children.values())
