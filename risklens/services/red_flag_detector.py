"""
Red Flag Detector

This module scans contract text for a fixed set of risk phrases and reports
human-readable findings.

Red Flags Covered (declaration order = output order):
- Unlimited liability
- Personal guarantee
- Automatic renewal
- Non-compete
- Sole discretion
- Termination without cause
- Liquidated damages
- Assignment without consent
- Exclusivity
- Penalty

Each pattern is tested independently and reported at most once, no matter how
often or where the phrase appears.

Usage Example:
    from risklens.services.red_flag_detector import detect_red_flags

    for flag in detect_red_flags(contract_text):
        print(flag)
"""

import logging
import re
from typing import List, Pattern, Tuple

# Initialize logger
logger = logging.getLogger(__name__)

# (pattern, finding) pairs
RED_FLAG_PATTERNS: List[Tuple[Pattern[str], str]] = [
    (re.compile(r'unlimited liability', re.IGNORECASE), 'Unlimited liability clause detected'),
    (re.compile(r'personal guarantee', re.IGNORECASE), 'Personal guarantee requirement found'),
    (
        re.compile(
            r'automatic(?:ally)?[- ]renew(?:s|al|ed|ing)?|auto[- ]?renew(?:s|al|ed|ing)?',
            re.IGNORECASE
        ),
        'Automatic renewal clause found'
    ),
    (re.compile(r'non[- ]?compete', re.IGNORECASE), 'Non-compete clause detected'),
    (re.compile(r'sole discretion', re.IGNORECASE), 'Sole discretion clause found'),
    (re.compile(r'without cause', re.IGNORECASE), 'Termination without cause clause found'),
    (re.compile(r'liquidated damages', re.IGNORECASE), 'Liquidated damages clause detected'),
    (
        re.compile(r'assignment[^.]{0,50}without[^.]{0,50}consent', re.IGNORECASE),
        'Assignment without consent clause found'
    ),
    (re.compile(r'exclusive', re.IGNORECASE), 'Exclusivity clause detected'),
    (re.compile(r'penalty', re.IGNORECASE), 'Penalty clause found'),
]


def detect_red_flags(contract_text: str) -> List[str]:
    """
    Detect risk phrases in a contract.

    Args:
        contract_text: The full contract text

    Returns:
        Findings in RED_FLAG_PATTERNS order, one per matching pattern
    """
    red_flags = [flag for pattern, flag in RED_FLAG_PATTERNS if pattern.search(contract_text)]

    logger.info(f"Red flag scan complete: {len(red_flags)} of {len(RED_FLAG_PATTERNS)} patterns matched")

    return red_flags
