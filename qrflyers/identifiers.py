import re
import uuid
from typing import List

_LEADING_INT = re.compile(r'\s*([+-]?\d+)')


def coerce_count(count) -> int:
    """Reads a requested count the lenient way; anything unusable becomes 1."""
    if isinstance(count, bool):
        return 1
    if isinstance(count, int):
        value = count
    elif isinstance(count, float):
        try:
            value = int(count)
        except (ValueError, OverflowError):
            return 1
    elif isinstance(count, str):
        match = _LEADING_INT.match(count)
        if not match:
            return 1
        value = int(match.group(1))
    else:
        return 1
    return value if value > 0 else 1


def generate_identifiers(count) -> List[str]:
    """
    Generates random UUID4 identifiers, one per QR code.

    Args:
        count: Requested number of identifiers. Non-numeric, zero or
            negative values produce a single identifier.

    Returns:
        List[str]: Canonical UUID strings in generation order.
    """
    return [str(uuid.uuid4()) for _ in range(coerce_count(count))]
