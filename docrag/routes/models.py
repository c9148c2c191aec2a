"""
Model-related API routes.
Handles listing available chat models.
"""
from fastapi import APIRouter, Request

from ..services.model_service import get_available_models

router = APIRouter(prefix="/api", tags=["models"])


@router.get("/models")
async def list_available_models(request: Request):
    """
    Return all supported chat models grouped by provider.

    Example response:
    {
        "ollama": ["llama3.2:3b", "qwen2.5:7b"],
        "openai": ["gpt-4o-mini"]
    }
    """
    return get_available_models(request.app.state.settings.chat_model)
