"""Factory for creating langchain chat models from configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from langchain_anthropic import ChatAnthropic
from langchain_openai import ChatOpenAI

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel

    from crawlforge.core.config.main import AIConfig

# Registry of available providers
CONNECTOR_REGISTRY: dict[str, type[BaseChatModel]] = {
    "anthropic": ChatAnthropic,
    "claude": ChatAnthropic,  # Alias
    "openai": ChatOpenAI,
    "gpt": ChatOpenAI,  # Alias
}


def get_available_providers() -> list[str]:
    """Get list of available providers."""
    return list(CONNECTOR_REGISTRY.keys())


def create_chat_model(ai: AIConfig, *, temperature: float, max_tokens: int) -> BaseChatModel:
    """Create a chat model for the configured provider.

    Args:
        ai: Provider and model name
        temperature: Sampling temperature for this stage
        max_tokens: Output budget for this stage

    Returns:
        A langchain chat model. API keys are read from the provider's usual
        environment variables.

    Raises:
        ValueError: If provider is not supported
    """
    provider = ai.connector.lower()

    if provider not in CONNECTOR_REGISTRY:
        available = ", ".join(CONNECTOR_REGISTRY.keys())
        raise ValueError(f"Unsupported provider '{ai.connector}'. Available: {available}")

    if provider in {"openai", "gpt"}:
        return ChatOpenAI(model=ai.model, temperature=temperature, max_tokens=max_tokens)

    return ChatAnthropic(model_name=ai.model, temperature=temperature, max_tokens=max_tokens)
