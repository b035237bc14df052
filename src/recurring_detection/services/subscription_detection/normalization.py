"""
Recipient name normalization.

Reduces a raw bank description to a comparable merchant key by stripping
bank boilerplate (payment-method markers, reference codes, dates, card masks)
and normalizing whitespace and casing.
"""

import logging
import re
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

# Leading boilerplate. Letter patterns ignore case so that the title-cased
# output normalizes to itself.
PREFIX_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(
        r'^(?:KORTKÖP|KORTKOP|AUTOGIRO|BG|PG|SWISH|BETALNING|ÖVERFÖRING|INSÄTTNING)\b\s*',
        re.IGNORECASE
    ),
    re.compile(r'^\d{4}-\d{2}-\d{2}\s*'),           # Date prefixes
    re.compile(r'^\*{4}\d{4}\s*'),                  # Card number pattern ****1234
    re.compile(r'^[A-Z]{2}\d{6,}\s*', re.IGNORECASE),  # Reference numbers like SE123456
)

# Trailing noise. Each requires a separator so legitimate words survive.
SUFFIX_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(r'\s+\d{4}-\d{2}-\d{2}$'),              # Trailing dates like 2024-01-15
    re.compile(r'\s+/\d{2}-\d{2}-\d{2}$'),             # Trailing dates like /25-12-18
    re.compile(r'\s+[A-Z]{2,3}\d{4,}$', re.IGNORECASE),  # Trailing codes like SE12345
    re.compile(r'\s+[A-Z]\d{4,}$', re.IGNORECASE),       # Trailing codes like P39211
    re.compile(r'\s+\d{3,4}$'),                        # Trailing 3-4 digit card/ref codes
    re.compile(r'\s*\*+\s*$'),                         # Trailing asterisks
)

WHITESPACE_PATTERN = re.compile(r'\s+')
WORD_SEPARATORS = frozenset(' -/')


def normalize_recipient_name(description: Optional[str]) -> str:
    """
    Normalize a transaction description to a recipient (merchant) key.

    Boilerplate is stripped repeatedly until nothing more matches, so
    ``normalize_recipient_name(normalize_recipient_name(x))`` equals
    ``normalize_recipient_name(x)``.

    Args:
        description: Raw description from the bank

    Returns:
        Title-cased merchant key, or the trimmed description if stripping
        removed everything. Empty only when the description was blank.
    """
    if not description:
        return ""

    original = description.strip()
    normalized = original

    previous = None
    while normalized != previous:
        previous = normalized
        for pattern in PREFIX_PATTERNS:
            normalized = pattern.sub('', normalized, count=1)
        for pattern in SUFFIX_PATTERNS:
            normalized = pattern.sub('', normalized, count=1)
        normalized = normalized.strip()

    normalized = WHITESPACE_PATTERN.sub(' ', normalized).strip()
    normalized = to_title_case(normalized)

    return normalized or original


def to_title_case(value: str) -> str:
    """
    Lowercase a string and capitalize the first letter of each word.

    Words are delimited by spaces, hyphens and slashes. Works character by
    character so non-ASCII letters (Å, Ä, Ö) are capitalized too.
    """
    if not value:
        return value

    result = []
    capitalize_next = True
    for char in value.lower():
        if char in WORD_SEPARATORS:
            result.append(char)
            capitalize_next = True
        elif capitalize_next:
            upper = char.upper()
            # Keep characters whose uppercase form expands (e.g. 'ß' -> 'SS')
            result.append(upper if len(upper) == 1 else char)
            capitalize_next = False
        else:
            result.append(char)

    return ''.join(result)
