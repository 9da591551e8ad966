"""
Pydantic schemas for API request/response models.

This module defines the API contract and is separate from the key-value
records in risklens/models.py. Response fields are serialized with camelCase
aliases (redFlags, detectedStates, ...) so cached results can be returned
to clients byte-for-byte.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# Request Schemas

class AnalyzeRequest(BaseModel):
    """
    Request schema for POST /api/analyze.

    text is optional here on purpose: a missing or blank text is reported by
    the orchestrator as a 400 `{"error": ...}` rather than a schema error.
    """
    text: Optional[str] = Field(None, description="Full contract text content")


# Response Schemas

class ClauseMap(BaseModel):
    """
    Category-tagged spans extracted from the contract.

    Every category is always present; categories without matches hold an empty list.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    payment_terms: List[str] = Field(default_factory=list, alias="paymentTerms")
    termination: List[str] = Field(default_factory=list)
    liability: List[str] = Field(default_factory=list)
    intellectual_property: List[str] = Field(default_factory=list, alias="intellectualProperty")
    auto_renewal: List[str] = Field(default_factory=list, alias="autoRenewal")
    governing_law: List[str] = Field(default_factory=list, alias="governingLaw")
    insurance: List[str] = Field(default_factory=list)
    dates: List[str] = Field(default_factory=list, description="Deduplicated date literals, first-seen order")


class JurisdictionSummary(BaseModel):
    """States detected in the contract and the approved subset that allowed analysis."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    detected_states: List[str] = Field(default_factory=list, alias="detectedStates")
    approved_states: List[str] = Field(default_factory=list, alias="approvedStates")


class AnalysisResult(BaseModel):
    """
    Response schema for POST /api/analyze.

    Immutable once produced. The same document is persisted under the cache
    key and returned verbatim for later identical submissions, including the
    timestamp of the first analysis.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    summary: str = Field(..., description="Abstractive or extractive summary")
    red_flags: List[str] = Field(default_factory=list, alias="redFlags")
    clauses: ClauseMap
    jurisdiction: JurisdictionSummary
    timestamp: str = Field(..., description="ISO-8601 UTC time the analysis was produced")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str = "ok"


class UsageResponse(BaseModel):
    """
    Response schema for GET /api/usage.

    Anonymous callers are only rate limited, so their plan and quota fields are null.
    """
    model_config = ConfigDict(populate_by_name=True)

    identity: str
    authenticated: bool
    allowed: bool
    tier: Optional[str] = None
    status: Optional[str] = None
    reason: Optional[str] = None
    usage: Optional[int] = None
    limit: Optional[int] = None
    remaining: Optional[int] = None
