from chat_gateway.infra.llm.anthropic_client import AnthropicClient
from chat_gateway.infra.llm.base import AIResult, ErrorKind, ProviderAdapter, ProviderError, ProviderOutcome
from chat_gateway.infra.llm.gemini_client import GeminiClient
from chat_gateway.infra.llm.groq_client import GroqClient
from chat_gateway.infra.llm.openai_client import OpenAIClient
from chat_gateway.infra.llm.registry import ProviderRegistry, build_provider_registry

__all__ = [
    "AIResult",
    "AnthropicClient",
    "ErrorKind",
    "GeminiClient",
    "GroqClient",
    "OpenAIClient",
    "ProviderAdapter",
    "ProviderError",
    "ProviderOutcome",
    "ProviderRegistry",
    "build_provider_registry",
]
