"""
Exception hierarchy for the document indexing and retrieval pipeline.

Every error carries a message plus an optional details dict that ends up in
the structured log line.
"""
from typing import Any, Dict, Optional


class DocRagError(Exception):
    """Base exception for all docrag errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigError(DocRagError):
    """Raised when an environment setting cannot be parsed."""


class ExtractError(DocRagError):
    """Raised when a file's bytes cannot be turned into plain text."""


class EmbeddingError(DocRagError):
    """Raised on empty/invalid embedding input or a model runtime failure."""


class StoreError(DocRagError):
    """Raised on connectivity loss, schema/dimension mismatch or query failure."""


class WatchError(DocRagError):
    """Raised when the filesystem watch cannot be started."""


class GenerationError(DocRagError):
    """Raised when the chat backend fails or times out."""


class GenerationTimeoutError(GenerationError):
    """Raised when the chat backend does not answer within the configured bound."""
