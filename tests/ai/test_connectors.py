"""Tests for the chat model factory."""

import pytest
from langchain_anthropic import ChatAnthropic
from langchain_openai import ChatOpenAI

from crawlforge.ai.connectors import create_chat_model, get_available_providers
from crawlforge.core.config.main import AIConfig


def test_available_providers() -> None:
    assert set(get_available_providers()) == {"anthropic", "claude", "openai", "gpt"}


def test_unsupported_provider() -> None:
    with pytest.raises(ValueError, match="Unsupported provider"):
        create_chat_model(AIConfig(connector="llama"), temperature=0.1, max_tokens=100)


def test_anthropic_model(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")

    llm = create_chat_model(AIConfig(connector="Anthropic"), temperature=0.1, max_tokens=4000)

    assert isinstance(llm, ChatAnthropic)
    assert llm.temperature == 0.1
    assert llm.max_tokens == 4000


def test_openai_model(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")

    llm = create_chat_model(AIConfig(connector="openai", model="gpt-4o"), temperature=0.2, max_tokens=8000)

    assert isinstance(llm, ChatOpenAI)
    assert llm.model_name == "gpt-4o"
    assert llm.max_tokens == 8000
