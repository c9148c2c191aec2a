from typing import Optional
from time import perf_counter

from .embedding import EmbeddingProvider
from .logging_config import logger
from .vector_store import Distance, VectorStore

MESSAGE_TEMPLATE = "Context: {context}. Question: {prompt}"


def compose_message(context: str, prompt: str) -> str:
    """Combine retrieved context and the user's prompt into one chat turn."""
    if not context.strip():
        return prompt
    return MESSAGE_TEMPLATE.format(context=context, prompt=prompt)


class RetrievalEngine:
    """
    Query-time side of the index: prompt -> embedding -> nearest chunks ->
    context block. Read-only with respect to the store.
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        store: VectorStore,
        distance: Distance = Distance.L2,
        default_k: int = 3,
        name_gate: Optional[float] = None,
    ):
        self.embedder = embedder
        self.store = store
        self.distance = Distance(distance)
        self.default_k = default_k
        self.name_gate = name_gate

    def retrieve_context(self, prompt: str, k: Optional[int] = None, threshold: Optional[float] = None) -> str:
        """
        Build the context block for `prompt`.

        Args:
            prompt: the user's question
            k: number of chunks to fetch (engine default when None)
            threshold: name-embedding gate; overrides the configured gate

        Raises:
            EmbeddingError: the prompt could not be embedded
            StoreError: the similarity query failed
        """
        k = k if k is not None else self.default_k
        gate = threshold if threshold is not None else self.name_gate
        t = perf_counter()

        query_embedding = self.embedder.embed(prompt)
        chunks = self.store.query_nearest(query_embedding, k, distance=self.distance, name_gate=gate)

        logger.info(
            "Retrieved chunks",
            count=len(chunks),
            k=k,
            name_gate=gate,
            documents=sorted({c.document_name for c in chunks}),
            time_ms=round((perf_counter() - t) * 1000, 2),
        )
        return "\n".join(c.text for c in chunks)

    def build_message(self, prompt: str, k: Optional[int] = None, threshold: Optional[float] = None) -> str:
        return compose_message(self.retrieve_context(prompt, k, threshold), prompt)
