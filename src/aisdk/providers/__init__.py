"""Provider adapters.

- OpenAICompatible: Any OpenAI Chat Completions endpoint over httpx
- ProviderSettings: Endpoint, model and credentials for an adapter
"""

from .openai_compatible import OpenAICompatible, ProviderSettings

__all__ = ["OpenAICompatible", "ProviderSettings"]
