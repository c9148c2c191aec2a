"""
Tests for environment-driven settings.
"""
import pytest

from docrag.config import Settings, load_settings
from docrag.exceptions import ConfigError

ENV_VARS = [
    "EMBEDDINGS_PATH",
    "WATCH_CREATE_MISSING",
    "WATCH_SETTLE_SECONDS",
    "EMBED_DIM",
    "SEGMENT_STRATEGY",
    "WINDOW_SIZE",
    "MERGE_THRESHOLD",
    "DISTANCE",
    "EMBED_NAMES",
    "NAME_GATE",
    "TOP_K",
    "PURGE_ON_CREATE",
    "CHAT_MODEL",
    "SYSTEM_PROMPT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = load_settings()
    assert settings.watch_dir == "./documents"
    assert settings.embed_dim == 384
    assert settings.segment_strategy == "neighbor_merge"
    assert settings.window_size == 100
    assert settings.merge_threshold == pytest.approx(0.7)
    assert settings.distance == "l2"
    assert settings.name_gate is None
    assert settings.top_k == 3
    assert settings.purge_on_create is False
    assert settings.system_prompt is None


def test_overrides(monkeypatch):
    monkeypatch.setenv("EMBEDDINGS_PATH", "/srv/pdfs")
    monkeypatch.setenv("SEGMENT_STRATEGY", "Window")
    monkeypatch.setenv("WINDOW_SIZE", "50")
    monkeypatch.setenv("DISTANCE", "cosine")
    monkeypatch.setenv("EMBED_NAMES", "yes")
    monkeypatch.setenv("NAME_GATE", "0.4")
    monkeypatch.setenv("CHAT_MODEL", "openai:gpt-4o-mini")
    settings = load_settings()
    assert settings.watch_dir == "/srv/pdfs"
    assert settings.segment_strategy == "window"
    assert settings.window_size == 50
    assert settings.distance == "cosine"
    assert settings.embed_names is True
    assert settings.name_gate == pytest.approx(0.4)
    assert settings.chat_model == "openai:gpt-4o-mini"


@pytest.mark.parametrize(
    "name, value",
    [
        ("SEGMENT_STRATEGY", "sentences"),
        ("DISTANCE", "manhattan"),
        ("WINDOW_SIZE", "zero"),
        ("TOP_K", "0"),
        ("EMBED_NAMES", "maybe"),
        ("NAME_GATE", "high"),
    ],
)
def test_invalid_values_raise(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError):
        load_settings()


def test_settings_are_frozen():
    with pytest.raises(AttributeError):
        Settings().top_k = 10


def test_name_gate_requires_name_embeddings(monkeypatch):
    monkeypatch.setenv("NAME_GATE", "0.5")
    with pytest.raises(ConfigError):
        load_settings()
    monkeypatch.setenv("EMBED_NAMES", "true")
    assert load_settings().name_gate == pytest.approx(0.5)
