"""SOA content generation: external generator clients and document quality checks."""

from .client import ContentGenerationClient, LLMContentGenerationClient
from .quality import DocumentQuality, assess_document_quality

__all__ = [
    "ContentGenerationClient",
    "LLMContentGenerationClient",
    "DocumentQuality",
    "assess_document_quality",
]
