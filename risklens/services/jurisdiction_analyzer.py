"""
Jurisdiction detection and validation for US state contracts.

This module decides whether a contract is governed by a state the analyzer
supports. It detects US state mentions, prefers the governing-law clause as the
authoritative signal, and applies the approved-state policy.

Jurisdiction Focus:
- Nine approved states: oklahoma, texas, louisiana, tennessee, kansas, missouri,
  mississippi, alabama, florida
- Colorado is recognized but explicitly disallowed and takes priority over
  any approved state found alongside it

Detection Strategy:
- Governing-law windows first ("governing law", "governed by", "applicable law",
  "jurisdiction" plus up to ~150 trailing characters within the sentence)
- Whole-document scan only when no state appears inside any such window, so a
  party's mailing address does not outweigh the chosen law
- State names and two-letter postal codes both match case-insensitively on
  word boundaries ("Texas", "TX" and "tx" all count)

Usage:
    from risklens.services.jurisdiction_analyzer import analyze_jurisdiction

    check = analyze_jurisdiction(contract_text)
    if not check.is_valid:
        print(f"Rejected: {check.reason}")
    else:
        print(f"Approved: {check.approved_states}")

DISCLAIMER:
This check is a policy gate, not a conflict-of-laws analysis, and does NOT
constitute legal advice.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Pattern

from risklens.jurisdictions.us_states import (
    DISALLOWED_STATE,
    DISALLOWED_STATE_MESSAGE,
    get_approved_states,
    get_recognized_states,
    is_approved,
)

# Module-level setup
logger = logging.getLogger(__name__)

APPROVED_STATES: List[str] = get_approved_states()


def _state_pattern(name: str, abbreviation: str) -> Pattern[str]:
    return re.compile(rf'\b(?:{name}|{abbreviation})\b', re.IGNORECASE)


STATE_PATTERNS: Dict[str, Pattern[str]] = {
    name: _state_pattern(name, abbreviation)
    for name, abbreviation in get_recognized_states().items()
}

GOVERNING_LAW_RX = re.compile(
    r'(?:governing law|governed by|applicable law|jurisdiction)[^.]{0,100}(?:state of\s+)?[^.]{0,50}',
    re.IGNORECASE
)


@dataclass(frozen=True)
class JurisdictionCheck:
    """
    Outcome of the jurisdiction gate.

    Attributes:
        is_valid: True when at least one approved state was found and no disallowed state
        detected_states: All recognized states, deduplicated, in detection order
        approved_states: Intersection of detected_states with APPROVED_STATES
        reason: Rejection message for the caller, None when valid
    """
    is_valid: bool
    detected_states: List[str] = field(default_factory=list)
    approved_states: List[str] = field(default_factory=list)
    reason: Optional[str] = None


def _states_in(text: str) -> List[str]:
    return [state for state, pattern in STATE_PATTERNS.items() if pattern.search(text)]


def detect_states(text: str) -> List[str]:
    """
    Detect US states the contract refers to.

    Governing-law clauses are scanned first. Only when none of them names a
    recognized state does the whole document get scanned.

    Args:
        text: Full contract text

    Returns:
        List of lowercase state names, deduplicated, in STATE_PATTERNS order

    Examples:
        >>> detect_states("This Agreement shall be governed by the laws of Texas.")
        ['texas']
        >>> detect_states("Seller: 1 Main St, Tulsa, OK. Governing law: Florida.")
        ['florida']
    """
    found = set()
    for match in GOVERNING_LAW_RX.finditer(text):
        found.update(_states_in(match.group(0)))

    if found:
        logger.debug(f"States found in governing-law clauses: {sorted(found)}")
    else:
        found.update(_states_in(text))
        if found:
            logger.debug(f"No governing-law state; whole-document scan found: {sorted(found)}")

    return [state for state in STATE_PATTERNS if state in found]


def validate_states(detected_states: List[str]) -> JurisdictionCheck:
    """
    Apply the approved-state policy to detected states.

    Args:
        detected_states: Output of detect_states()

    Returns:
        JurisdictionCheck: valid with the approved intersection, or invalid with a reason
    """
    detected = list(detected_states)

    if DISALLOWED_STATE in detected:
        return JurisdictionCheck(
            is_valid=False,
            detected_states=detected,
            reason=DISALLOWED_STATE_MESSAGE
        )

    approved = [state for state in detected if is_approved(state)]
    supported = ', '.join(APPROVED_STATES)

    if not approved:
        if detected:
            reason = (
                f"This analyzer only supports contracts from: {supported}. "
                f"Detected states: {', '.join(detected)}."
            )
        else:
            reason = (
                f"This analyzer only supports contracts from: {supported}. "
                f"No valid state jurisdiction could be determined from the contract."
            )
        return JurisdictionCheck(is_valid=False, detected_states=detected, reason=reason)

    return JurisdictionCheck(is_valid=True, detected_states=detected, approved_states=approved)


def analyze_jurisdiction(contract_text: str) -> JurisdictionCheck:
    """
    Detect states in a contract and decide whether it may be analyzed.

    Args:
        contract_text: The full contract text

    Returns:
        JurisdictionCheck describing the decision
    """
    detected = detect_states(contract_text)
    check = validate_states(detected)

    if check.is_valid:
        logger.info(f"Jurisdiction accepted: detected={detected}, approved={check.approved_states}")
    else:
        logger.info(f"Jurisdiction rejected: detected={detected}")

    return check
