import json

import aiohttp

DEFAULT_OLLAMA_URL = "http://localhost:11434"


async def stream_ollama_chat(model: str, messages: list, base_url: str = DEFAULT_OLLAMA_URL):
    """
    Stream chat completion tokens from Ollama.
    Yields: {"type":"delta", "text": "..."}

    Raises:
        aiohttp.ClientError: Ollama unreachable or returned an error status
    """
    async with aiohttp.ClientSession() as session:
        async with session.post(
            f"{base_url.rstrip('/')}/api/chat",
            json={"model": model, "messages": messages, "stream": True},
        ) as resp:
            resp.raise_for_status()
            async for line in resp.content:
                line = line.decode().strip()
                if not line:
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if "error" in data:
                    raise aiohttp.ClientResponseError(
                        resp.request_info, resp.history, status=resp.status, message=str(data["error"])
                    )
                if "message" in data and "content" in data["message"]:
                    yield {"type": "delta", "text": data["message"]["content"]}


async def ollama_chat(model: str, messages: list, base_url: str = DEFAULT_OLLAMA_URL) -> str:
    """Run one chat completion against Ollama and return the full text."""
    parts = []
    async for event in stream_ollama_chat(model, messages, base_url):
        parts.append(event["text"])
    return "".join(parts)
