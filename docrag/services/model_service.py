"""
Model service for chat provider management.
Handles model resolution and listing available models.
"""
from typing import Dict, List, Tuple

DEFAULT_PROVIDER = "ollama"
DEFAULT_MODEL = "llama3.2:3b"

# Model registry
AVAILABLE_MODELS = {
    "ollama": ["llama3.2:3b", "qwen2.5:7b"],
    "openai": ["gpt-4o-mini"],
}


def get_available_models(configured: str = None) -> Dict[str, List[str]]:
    """
    Get all available models grouped by provider.

    The configured chat model is listed even when it is not in the registry.
    """
    models = {provider: list(names) for provider, names in AVAILABLE_MODELS.items()}
    if configured:
        provider, model_name = resolve_model(configured)
        if model_name not in models.setdefault(provider, []):
            models[provider].append(model_name)
    return models


def resolve_model(model_string: str = None) -> Tuple[str, str]:
    """
    Resolve a model string to provider and model name.

    Args:
        model_string: Format "provider:model_name" (e.g., "ollama:llama3.2:3b")
                     or None for default

    Returns:
        Tuple of (provider, model_name)

    Examples:
        >>> resolve_model("openai:gpt-4o-mini")
        ('openai', 'gpt-4o-mini')

        >>> resolve_model("ollama:qwen2.5:7b")
        ('ollama', 'qwen2.5:7b')

        >>> resolve_model(None)
        ('ollama', 'llama3.2:3b')
    """
    if not model_string:
        return DEFAULT_PROVIDER, DEFAULT_MODEL

    provider, sep, model_name = model_string.partition(":")
    if not sep or provider not in AVAILABLE_MODELS or not model_name:
        # Fallback to default if format is unexpected
        return DEFAULT_PROVIDER, DEFAULT_MODEL

    return provider, model_name
