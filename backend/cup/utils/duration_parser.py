"""
Duration parsing for the server refresh interval.

Converts human-readable strings such as "30s", "15m" or "1h30m" to seconds.
"""

import re
from typing import Optional, Union

_COMPONENT = re.compile(r'(\d+(?:\.\d+)?)(ms|s|m|h|d)')

_SECONDS_PER_UNIT = {
    'ms': 0.001,
    's': 1,
    'm': 60,
    'h': 3_600,
    'd': 86_400,
}


def parse_refresh_interval(duration: Union[str, int, float, None]) -> Optional[float]:
    """
    Parse a refresh interval to seconds.

    Supported units: ms, s, m, h, d. Plain numbers are taken as seconds.

    Args:
        duration: Duration string (e.g., "30s", "1h30m"), number of seconds, or None

    Returns:
        Interval in seconds, or None when no interval is configured

    Raises:
        ValueError: If the duration string format is invalid or not positive

    Examples:
        >>> parse_refresh_interval("30s")
        30.0
        >>> parse_refresh_interval("1h30m")
        5400.0
        >>> parse_refresh_interval(None) is None
        True
    """
    if duration is None or duration == '':
        return None

    if isinstance(duration, (int, float)):
        seconds = float(duration)
    else:
        duration_str = str(duration).strip().lower()
        if duration_str.replace('.', '', 1).isdigit():
            seconds = float(duration_str)
        else:
            position = 0
            seconds = 0.0
            for match in _COMPONENT.finditer(duration_str):
                if match.start() != position:
                    break
                value, unit = match.groups()
                seconds += float(value) * _SECONDS_PER_UNIT[unit]
                position = match.end()
            if position == 0 or position != len(duration_str):
                raise ValueError(
                    f"Invalid duration format: '{duration}'. "
                    f"Expected format: <number><unit> (e.g., '30s', '15m', '1h30m'). "
                    f"Valid units: ms, s, m, h, d"
                )

    if seconds <= 0:
        raise ValueError(f"Refresh interval must be positive: '{duration}'")
    return seconds
