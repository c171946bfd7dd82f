"""
Order number generation.

Format: PREFIX-ddmmyyyy-XXXXXX, where XXXXXX is six random uppercase
alphanumerics. Uniqueness is probabilistic: there is no lookup against
existing orders, and the orders table's unique constraint turns the rare
collision into an ordinary persistence failure.
"""

import re
import secrets
import string
from datetime import datetime
from typing import Optional

SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
SUFFIX_LENGTH = 6


def generate_order_number(prefix: str = "ORD", now: Optional[datetime] = None) -> str:
    """
    Build a human-readable order number.

    Example:
        >>> generate_order_number("ORD", datetime(2024, 3, 7))
        'ORD-07032024-K3Z9QA'
    """
    now = now or datetime.now()
    suffix = "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(SUFFIX_LENGTH))
    return f"{prefix}-{now:%d%m%Y}-{suffix}"


def order_number_pattern(prefix: str = "ORD") -> re.Pattern:
    return re.compile(rf"^{re.escape(prefix)}-\d{{8}}-[A-Z0-9]{{{SUFFIX_LENGTH}}}$")


def is_valid_order_number(value: str, prefix: str = "ORD") -> bool:
    return bool(order_number_pattern(prefix).match(value))
