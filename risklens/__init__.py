"""RiskLens contract analysis service."""
