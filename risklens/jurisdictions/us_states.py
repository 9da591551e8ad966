"""
US State Jurisdiction Configuration Module

This module contains the state-level policy used by the jurisdiction gate:
which states the analyzer recognizes, which of them are approved for
analysis, and which is explicitly disallowed.

Key Components:
- US_STATES: Recognized states and their postal abbreviations, in detection order
- APPROVED_STATES: States whose contracts may be analyzed (message order)
- DISALLOWED_STATE: Recognized state that is always rejected
- Helper functions for accessing configuration data

Changing the approved list changes the rejection messages returned to callers,
which enumerate APPROVED_STATES in the order given here.
"""

from typing import Dict, List


# ============================================================================
# Recognized States
# ============================================================================

US_STATES: Dict[str, str] = {
    "alabama": "AL",
    "florida": "FL",
    "kansas": "KS",
    "louisiana": "LA",
    "mississippi": "MS",
    "missouri": "MO",
    "oklahoma": "OK",
    "tennessee": "TN",
    "texas": "TX",
    "colorado": "CO",
}


# ============================================================================
# Policy
# ============================================================================

APPROVED_STATES: List[str] = [
    "oklahoma", "texas", "louisiana", "tennessee",
    "kansas", "missouri", "mississippi", "alabama", "florida",
]

DISALLOWED_STATE: str = "colorado"

DISALLOWED_STATE_MESSAGE: str = "Colorado contracts are not supported by this analyzer."


# ============================================================================
# Helper Functions
# ============================================================================

def get_recognized_states() -> Dict[str, str]:
    """
    Get recognized state names mapped to postal abbreviations.

    Returns:
        Dictionary in detection order
    """
    return dict(US_STATES)


def get_approved_states() -> List[str]:
    """
    Get the approved states in the order used for rejection messages.

    Returns:
        List of lowercase state names
    """
    return list(APPROVED_STATES)


def is_approved(state: str) -> bool:
    """Check whether a lowercase state name is approved for analysis."""
    return state in APPROVED_STATES
