"""Parsing and rendering of reference numbers.

Reference numbers are stored as zero-padded decimal strings ("001", "042").
Values wider than the pad width are kept whole ("1000" after "999").
"""

import re
from typing import Optional

from ..errors import DataIntegrityError

_DIGITS = re.compile(r"[0-9]+")


def parse_reference_number(value: str, entity_type: Optional[str] = None) -> int:
    """Integer value of a stored reference number.

    Only ASCII digits are accepted. Whitespace, signs, or any other
    character is a data defect, not something to coerce.

    Raises:
        DataIntegrityError: If the value is not a pure digit string
    """
    if value is None or not _DIGITS.fullmatch(value):
        raise DataIntegrityError(
            "Stored reference number is not numeric",
            entity_type=entity_type,
            reference_number=value,
        )
    return int(value)


def render_reference_number(number: int, pad_width: int) -> str:
    """Zero-pad ``number`` to ``pad_width`` digits without ever truncating."""
    if number < 1:
        raise ValueError("Reference numbers start at 1")
    return str(number).zfill(pad_width)


def next_reference_number(current: Optional[str], pad_width: int, entity_type: Optional[str] = None) -> str:
    """Reference number following ``current`` (None when the partition is empty)."""
    if current is None:
        return render_reference_number(1, pad_width)
    return render_reference_number(parse_reference_number(current, entity_type) + 1, pad_width)
