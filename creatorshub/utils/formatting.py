"""
Helper functions for formatting data into human-readable strings.
"""


def format_size(bytes_size: int) -> str:
    """Formats bytes into a human-readable size string (e.g., '145.3 MB')."""
    if bytes_size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while bytes_size >= 1024 and i < len(units) - 1:
        bytes_size /= 1024
        i += 1
    return f"{bytes_size:.1f} {units[i]}"


def mask_secret(value: str | None, visible: int = 4) -> str:
    """
    Hides all but the last few characters of a token (e.g., '••••••a1b2').
    """
    if not value:
        return "-"
    if len(value) <= visible:
        return "•" * len(value)
    return "•" * 6 + value[-visible:]
