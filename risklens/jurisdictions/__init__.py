"""
Jurisdiction-Specific Configuration Package

This package contains the jurisdiction policy used to decide which contracts
the analyzer accepts. Each jurisdiction module provides:

- The places it recognizes and how they are referred to in contract text
- Which of them are approved for analysis
- Which are explicitly disallowed, with the message returned to callers

Current Jurisdictions:
- us_states.py: United States, state-level governing law

Usage:
    from risklens.jurisdictions.us_states import get_approved_states, is_approved

    approved = get_approved_states()
"""
