"""Human-readable size and duration formatting."""

from __future__ import annotations


def format_file_size(num_bytes: int) -> str:
    if num_bytes >= 1024**3:
        return f"{num_bytes // 1024**3}GB"
    if num_bytes >= 1024**2:
        return f"{num_bytes // 1024**2}MB"
    if num_bytes >= 1024:
        return f"{num_bytes // 1024}KB"
    return f"{num_bytes}B"


def format_duration(seconds: float) -> str:
    total = int(seconds)
    if total >= 3600:
        return f"{total // 3600}h {(total % 3600) // 60}m {total % 60}s"
    if total >= 60:
        return f"{total // 60}m {total % 60}s"
    return f"{total}s"
