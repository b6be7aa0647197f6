"""
Input sanitization utilities for EcoTracker form values.
Cleans free text before it is stored and parses the duration field.
"""

import re
import logging
from typing import Any, Optional

MAX_DESCRIPTION_LENGTH = 500
MAX_NOTES_LENGTH = 1000
MAX_CAPTION_LENGTH = 300

_CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')
_LEADING_INT = re.compile(r'^[+-]?\d+')


def sanitize_string(input_str: Any, max_length: Optional[int] = None) -> str:
    """
    Sanitize a string input by:
    1. Stripping leading/trailing whitespace
    2. Removing control characters (except tab, newline, carriage return)
    3. Truncating to max_length if specified

    Args:
        input_str: The input string to sanitize
        max_length: Optional maximum length for truncation

    Returns:
        Sanitized string
    """
    if not isinstance(input_str, str):
        if input_str is None:
            return ""
        input_str = str(input_str)

    sanitized = _CONTROL_CHARS.sub('', input_str).strip()

    if max_length and len(sanitized) > max_length:
        logging.warning(f"Input truncated from {len(sanitized)} to {max_length} characters")
        sanitized = sanitized[:max_length].rstrip()

    return sanitized


def parse_duration_minutes(value: Any) -> int:
    """
    Parse user-entered duration text into whole minutes.

    The leading integer of the trimmed text is used ("15 min" -> 15,
    "2.5" -> 2). Text without a leading integer, and negative values,
    count as 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)

    match = _LEADING_INT.match(str(value).strip())
    if not match:
        return 0
    return max(int(match.group(0)), 0)
