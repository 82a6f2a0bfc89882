"""Time conversion utilities (seconds based)."""

from functools import lru_cache


@lru_cache(maxsize=4096)
def seconds_to_display(seconds: float) -> str:
    """Convert seconds to a short display string 'M:SS'."""
    if seconds < 0:
        seconds = 0.0
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"


@lru_cache(maxsize=4096)
def seconds_to_precise(seconds: float) -> str:
    """Convert seconds to 'M:SS.mmm', or 'H:MM:SS.mmm' past one hour."""
    if seconds < 0:
        seconds = 0.0
    total_ms = int(round(seconds * 1000))
    hours = total_ms // 3_600_000
    remainder = total_ms % 3_600_000
    minutes = remainder // 60_000
    remainder = remainder % 60_000
    secs = remainder // 1000
    millis = remainder % 1000
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}.{millis:03d}"
    return f"{minutes}:{secs:02d}.{millis:03d}"
