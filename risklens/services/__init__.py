"""
Services module for the contract analysis pipeline and its collaborators.

This package contains:
- jurisdiction_analyzer: US state detection and approved-state policy
- clause_extractor: Regex extraction of clause categories and date literals
- red_flag_detector: Fixed risk-phrase scan
- summarizer: Remote abstractive summary with extractive fallback
- http_client: Shared httpx client for the summarization API
- billing: Key-value backed subscription ledger and monthly usage
- access_gate: Per-identity rate limit and tier quota
- auth: Caller identity from JWT, API key or client IP
- analysis_orchestrator: Cache-first sequencing of the whole pipeline

Service Pattern:
- Pure analysis steps (jurisdiction, clauses, red flags) are plain functions over text
- Steps that touch the key-value store or the network are async
- Policy failures raise risklens.errors exceptions; the summarizer never raises
- Module-level logger per service
"""
