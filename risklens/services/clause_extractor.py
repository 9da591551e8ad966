"""
Clause extraction service.

This module pulls category-tagged text spans and date literals out of contract
text with independent regular expressions. Each category is a pure function of
the input; nothing is shared between categories beyond the per-call result map.

Clause categories supported:
- paymentTerms: Payment schedules and due dates
- termination: Termination rights and procedures
- liability: Liability and indemnification language
- intellectualProperty: IP, copyright, trademark and patent provisions
- autoRenewal: Renewal and automatic renewal terms
- governingLaw: Choice-of-law language
- insurance: Insurance requirements
- dates: Date literals (numeric D/M/Y variants, ISO-like, "Month D, YYYY")

Each span is the start keyword plus up to 200 trailing characters. Matches are
non-overlapping and kept in text order; only dates are deduplicated.

Usage:
    from risklens.services.clause_extractor import extract_clauses

    clauses = extract_clauses(contract_text)
    # {'paymentTerms': [...], 'termination': [...], ..., 'dates': [...]}
"""

import logging
import re
from typing import Dict, List, Pattern

# Module-level setup
logger = logging.getLogger(__name__)

# Characters captured after each start keyword
SPAN_LOOKAHEAD = 200

_TRAILING = rf'[\s\S]{{0,{SPAN_LOOKAHEAD}}}'

# Category definitions (response key -> start keyword pattern)
CLAUSE_KEYWORDS: Dict[str, str] = {
    'paymentTerms': r'payments?\s+(?:(?:is|are|will be|shall be)\s+)?(?:terms?|due|within|made|payable)',
    'termination': r'terminat(?:e|ion)',
    'liability': r'(?:liability|indemnif|indemnit)',
    'intellectualProperty': r'(?:intellectual property|copyright|trademark|patent)',
    'autoRenewal': r'(?:auto[- ]?renew|automatic(?:ally)? renew|renew(?:al)?)',
    'governingLaw': r'(?:governing law|governed by|applicable law)',
    'insurance': r'insurance',
}

CLAUSE_PATTERNS: Dict[str, Pattern[str]] = {
    category: re.compile(keyword + _TRAILING, re.IGNORECASE)
    for category, keyword in CLAUSE_KEYWORDS.items()
}

MONTHS = (
    'january|february|march|april|may|june|july|august|'
    'september|october|november|december'
)

DATE_RX = re.compile(
    r'\b(?:'
    r'\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}'
    r'|\d{4}[/\-.]\d{1,2}[/\-.]\d{1,2}'
    rf'|(?:{MONTHS})\s+\d{{1,2}},?\s+\d{{4}}'
    r')\b',
    re.IGNORECASE
)

CLAUSE_CATEGORIES: List[str] = list(CLAUSE_PATTERNS) + ['dates']


def extract_category(text: str, category: str) -> List[str]:
    """
    Extract every span for one clause category.

    Args:
        text: Contract text
        category: One of the CLAUSE_PATTERNS keys

    Returns:
        Non-overlapping spans in text order (may contain near-duplicates)

    Raises:
        KeyError: If category is unknown
    """
    return [match.group(0) for match in CLAUSE_PATTERNS[category].finditer(text)]


def extract_dates(text: str) -> List[str]:
    """Extract date literals, deduplicated while preserving first-seen order."""
    # dict preserves insertion order
    return list(dict.fromkeys(match.group(0) for match in DATE_RX.finditer(text)))


def extract_clauses(contract_text: str) -> Dict[str, List[str]]:
    """
    Extract all clause categories and dates from contract text.

    Args:
        contract_text: The full contract text

    Returns:
        Dictionary keyed by category name; every key in CLAUSE_CATEGORIES is present

    Example:
        >>> clauses = extract_clauses("Payment is due within 30 days.")
        >>> clauses['paymentTerms']
        ['Payment is due within 30 days.']
        >>> clauses['dates']
        []
    """
    clauses = {category: extract_category(contract_text, category) for category in CLAUSE_PATTERNS}
    clauses['dates'] = extract_dates(contract_text)

    counts = {category: len(spans) for category, spans in clauses.items() if spans}
    logger.info(f"Extracted clauses: {counts or 'none'}")

    return clauses
