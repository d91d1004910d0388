"""Heuristic quality assessment of extracted source documents."""

import re
from typing import List

from pydantic import BaseModel, Field

FINANCIAL_KEYWORDS = (
    "income",
    "superannuation",
    "retirement",
    "investment",
    "insurance",
    "tax",
    "age",
    "balance",
    "contribution",
)
PLACEHOLDER_MARKERS = ("[MISSING", "[TBD", "N/A", "To be completed")
MIN_KEYWORDS = 3
LOW_QUALITY_THRESHOLD = 0.5

_DATE_PATTERN = re.compile(r"\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}")


class DocumentQuality(BaseModel):
    score: float = Field(..., ge=0.0, le=1.0)
    issues: List[str] = Field(default_factory=list)

    @property
    def is_low(self) -> bool:
        return self.score < LOW_QUALITY_THRESHOLD


def assess_document_quality(text: str) -> DocumentQuality:
    """Score a document between 0 and 1 from its length, vocabulary and data markers."""
    issues: List[str] = []
    score = 1.0

    length = len(text.strip())
    if length < 100:
        issues.append("Document is very short (less than 100 characters)")
        score -= 0.3
    elif length < 500:
        issues.append("Document is short (less than 500 characters)")
        score -= 0.15

    lowered = text.lower()
    if sum(1 for keyword in FINANCIAL_KEYWORDS if keyword in lowered) < MIN_KEYWORDS:
        issues.append("Document lacks common financial planning terminology")
        score -= 0.2

    if not any(char.isdigit() for char in text):
        issues.append("Document appears to lack numerical data")
        score -= 0.15
    if not _DATE_PATTERN.search(text):
        issues.append("Document appears to lack date information")
        score -= 0.1

    if any(marker in text for marker in PLACEHOLDER_MARKERS):
        issues.append("Document contains placeholder or incomplete content markers")
        score -= 0.2

    return DocumentQuality(score=round(max(0.0, min(1.0, score)), 4), issues=issues)
