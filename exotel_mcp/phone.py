"""Phone number normalization for callback storage and lookups.

Stored callback records use the 11-digit national format with a leading 0
(e.g. "09876543210"), whatever form the vendor or the caller used.
"""

import logging
import re

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")


def digits_only(number: str | None) -> str:
    """Strip everything except digits."""
    if not number:
        return ""
    return _NON_DIGITS.sub("", number)


def format_phone_number_for_query(number: str | None) -> str:
    """Normalize a phone number to "0" + 10 digits.

    Examples:
        "9876543210"     -> "09876543210"
        "09876543210"    -> "09876543210"
        "+919876543210"  -> "09876543210"
        "919876543210"   -> "09876543210"
        "0919876543210"  -> "09876543210"

    Empty input (or input without digits) returns "".
    """
    clean = digits_only(number)
    if not clean:
        if number and number.strip():
            logger.warning(f"Phone number has no digits: '{number}'")
        return ""

    length = len(clean)
    if length == 10:
        formatted = "0" + clean
    elif length == 11 and clean.startswith("0"):
        formatted = clean
    elif length == 12 and clean.startswith("91"):
        formatted = "0" + clean[2:]
    elif length >= 11:
        formatted = "0" + clean[-10:]
    else:
        # Too short to be a subscriber number, left-pad to keep the format
        formatted = "0" + clean.zfill(10)
        logger.warning(f"Unusual phone number length ({length}): '{number}' -> '{formatted}'")

    logger.debug(f"Formatted phone number '{number}' -> '{formatted}'")
    return formatted


def format_phone_number_for_display(number: str | None) -> str:
    """10-digit form without the leading 0."""
    formatted = format_phone_number_for_query(number)
    if len(formatted) == 11 and formatted.startswith("0"):
        return formatted[1:]
    return formatted


def strip_country_code(number: str | None) -> str:
    """Remove a +91 prefix, as the vendor's call listing expects."""
    if not number:
        return ""
    return number.replace("+91", "")
