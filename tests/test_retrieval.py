"""
Tests for context retrieval and message composition.
"""
import pytest

from conftest import FixedVectorModel, InMemoryStore
from docrag.embedding import EmbeddingProvider
from docrag.exceptions import EmbeddingError
from docrag.retrieval import RetrievalEngine, compose_message
from docrag.vector_store import Distance


@pytest.fixture
def indexed(embedder, store):
    docs = {
        "refunds.pdf": ["refund within thirty days of purchase", "refund requires the original receipt"],
        "shipping.pdf": ["shipping takes five business days"],
        "weather.pdf": ["sunny weather expected tomorrow"],
    }
    for name, chunks in docs.items():
        name_vec = embedder.embed(name.replace(".pdf", ""))
        for chunk in chunks:
            store.insert_chunk(chunk, embedder.embed(chunk), name, name_vec)
    return store


def test_context_is_ranked_chunk_texts_joined_by_newline(embedder, indexed):
    engine = RetrievalEngine(embedder, indexed, default_k=2)
    context = engine.retrieve_context("refund within thirty")
    lines = context.split("\n")
    assert len(lines) == 2
    assert lines[0] == "refund within thirty days of purchase"
    assert all("refund" in line for line in lines)


def test_k_caps_the_number_of_chunks(embedder, indexed):
    engine = RetrievalEngine(embedder, indexed, default_k=3)
    assert len(engine.retrieve_context("refund", k=1).split("\n")) == 1
    assert len(engine.retrieve_context("refund").split("\n")) == 3


def test_empty_store_gives_empty_context(embedder, store):
    assert RetrievalEngine(embedder, store).retrieve_context("anything") == ""


def test_threshold_overrides_configured_gate(embedder, indexed):
    engine = RetrievalEngine(embedder, indexed, default_k=5, name_gate=0.99)
    # the prompt is not the name of any document, so a strict gate excludes everything
    assert engine.retrieve_context("refund policy") == ""
    context = engine.retrieve_context("refunds", threshold=0.5)
    assert context
    assert all("refund" in line for line in context.split("\n"))


def test_distance_is_passed_to_the_store(embedder, store):
    calls = []

    class RecordingStore:
        def query_nearest(self, query_embedding, k, distance=Distance.L2, name_gate=None):
            calls.append((k, distance, name_gate))
            return []

    RetrievalEngine(embedder, RecordingStore(), distance="cosine", default_k=4).retrieve_context("q")
    assert calls == [(4, Distance.COSINE, None)]


def test_embedding_failure_propagates(embedder, store):
    with pytest.raises(EmbeddingError):
        RetrievalEngine(embedder, store).retrieve_context("   ")


class TestComposeMessage:
    def test_template(self):
        assert compose_message("ctx line", "why?") == "Context: ctx line. Question: why?"

    def test_empty_context_sends_prompt_alone(self):
        assert compose_message("", "why?") == "why?"

    def test_build_message(self, embedder, indexed):
        engine = RetrievalEngine(embedder, indexed, default_k=1)
        message = engine.build_message("shipping days")
        assert message == "Context: shipping takes five business days. Question: shipping days"


def test_explicit_k_zero_is_rejected(embedder, indexed):
    with pytest.raises(ValueError):
        RetrievalEngine(embedder, indexed, default_k=3).retrieve_context("refund", k=0)


class TestNameGate:
    """Gate 0.5 against a name whose score to the query is 0.4."""

    QUERY = "what is covered"
    CLOSE_CONTENT = "closest content chunk"
    OTHER_CONTENT = "other content chunk"

    @pytest.fixture
    def gated(self):
        model = FixedVectorModel(
            {
                self.QUERY: [1.0, 0.0, 0.0],
                self.CLOSE_CONTENT: [1.0, 0.0, 0.0],
                self.OTHER_CONTENT: [0.0, 1.0, 0.0],
            },
            default=[0.0, 0.0, 1.0],
        )
        gated_store = InMemoryStore(dim=3)
        # name similarity 0.4 to the query (cosine distance 0.6)
        gated_store.insert_chunk(self.CLOSE_CONTENT, [1.0, 0.0, 0.0], "close.pdf", [0.4, 0.916515, 0.0])
        # name similarity 0.6 to the query (cosine distance 0.4)
        gated_store.insert_chunk(self.OTHER_CONTENT, [0.0, 1.0, 0.0], "other.pdf", [0.6, 0.8, 0.0])
        return RetrievalEngine(EmbeddingProvider(model), gated_store, default_k=1, name_gate=0.5)

    def test_low_name_score_excluded_even_when_content_is_closest(self, gated):
        assert gated.retrieve_context(self.QUERY) == self.OTHER_CONTENT

    def test_without_gate_closest_content_wins(self, gated):
        gated.name_gate = None
        assert gated.retrieve_context(self.QUERY) == self.CLOSE_CONTENT
