"""Human-readable formatting helpers."""


def format_duration(seconds: int) -> str:
    """
    Format a duration for display.

    Example:
        45 -> "45s"
        125 -> "2m 5s"
        3660 -> "1h 1m"
    """
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        minutes, remaining = divmod(seconds, 60)
        return f"{minutes}m {remaining}s"
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    return f"{hours}h {minutes}m"
