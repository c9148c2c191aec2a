"""
Conversation state owned by the generation component.

A ChatSession holds the message history and the lock that serializes
generation calls. HTTP handlers receive the session as a handle; nothing else
touches the history directly.
"""
import asyncio
from functools import partial
from typing import Awaitable, Callable, Dict, List, Optional

from ..exceptions import GenerationError, GenerationTimeoutError
from ..logging_config import logger
from ..ollama_client import ollama_chat
from ..openai_client import openai_chat
from .model_service import resolve_model

Message = Dict[str, str]
Backend = Callable[[List[Message]], Awaitable[str]]


def make_backend(model_string: str, ollama_url: str) -> Backend:
    """Pick the chat backend for a "provider:model" string."""
    provider, model_name = resolve_model(model_string)
    if provider == "openai":
        return partial(openai_chat, model_name)
    return partial(_ollama_backend, model_name, ollama_url)


async def _ollama_backend(model_name: str, base_url: str, messages: List[Message]) -> str:
    return await ollama_chat(model_name, messages, base_url=base_url)


class ChatSession:
    """Sequential chat; at most one generation call in flight."""

    def __init__(
        self,
        backend: Backend,
        system_prompt: Optional[str] = None,
        timeout: Optional[float] = None,
        name: str = "default",
    ):
        self._backend = backend
        self._system_prompt = system_prompt
        self._timeout = timeout
        self._history: List[Message] = []
        self._lock = asyncio.Lock()
        self.name = name

    @property
    def history(self) -> List[Message]:
        return list(self._history)

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def _messages(self) -> List[Message]:
        messages = []
        if self._system_prompt:
            messages.append({"role": "system", "content": self._system_prompt})
        messages.extend(self._history)
        return messages

    async def send(self, message: str) -> str:
        """
        Append `message` as a user turn, generate the reply and append it.

        On failure or timeout the user turn is removed again, so the history
        only ever contains completed exchanges.

        Raises:
            GenerationTimeoutError: no reply within the configured timeout
            GenerationError: the backend failed
        """
        async with self._lock:
            self._history.append({"role": "user", "content": message})
            try:
                text = await asyncio.wait_for(self._backend(self._messages()), self._timeout)
            except asyncio.TimeoutError:
                self._history.pop()
                logger.warning("Generation timed out", session=self.name, timeout=self._timeout)
                raise GenerationTimeoutError(
                    "Generation timed out", {"timeout": self._timeout}
                ) from None
            except asyncio.CancelledError:
                self._history.pop()
                raise
            except GenerationError:
                self._history.pop()
                raise
            except Exception as e:
                self._history.pop()
                logger.error("Generation failed", session=self.name, error=str(e))
                raise GenerationError("Generation failed", {"error": str(e)}) from e

            self._history.append({"role": "assistant", "content": text})
            logger.debug("Generation finished", session=self.name, turns=len(self._history) // 2)
            return text

    async def reset(self) -> None:
        async with self._lock:
            self._history.clear()
