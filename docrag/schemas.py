"""
Pydantic schemas for request/response validation.
"""
from typing import Optional

from pydantic import BaseModel, Field


class GenerateBody(BaseModel):
    """Request body for asking a question."""
    prompt: str = Field(..., min_length=1, description="The question to ask")
    k: Optional[int] = Field(None, ge=1, le=50, description="Number of chunks to retrieve")
    threshold: Optional[float] = Field(
        None, ge=-1.0, le=1.0, description="Minimum document-name similarity to the prompt"
    )


class GeneratedText(BaseModel):
    """Generated answer for a prompt."""
    prompt: str
    text: str


class DocumentSummary(BaseModel):
    """An indexed document and the number of chunks stored for it."""
    name: str
    chunks: int
