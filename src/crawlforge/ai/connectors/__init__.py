from .factory import CONNECTOR_REGISTRY, create_chat_model, get_available_providers

__all__ = ["CONNECTOR_REGISTRY", "create_chat_model", "get_available_providers"]
