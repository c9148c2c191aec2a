import os
from typing import Optional

from openai import AsyncOpenAI

from .exceptions import GenerationError

_client: Optional[AsyncOpenAI] = None


def get_client() -> AsyncOpenAI:
    """Create the OpenAI client on first use; the key is only needed for the openai backend."""
    global _client
    if _client is None:
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise GenerationError("OPENAI_API_KEY is not set. Put it in env or .env (server-side only).")
        _client = AsyncOpenAI(api_key=api_key)
    return _client


async def openai_chat(model: str, messages: list, temperature: float = 0.2) -> str:
    """Run one chat completion against OpenAI and return the full text."""
    response = await get_client().chat.completions.create(
        model=model,
        messages=messages,
        temperature=temperature,
    )
    return response.choices[0].message.content or ""
