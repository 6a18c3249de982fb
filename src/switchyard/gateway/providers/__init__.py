"""Provider adapters.

Each adapter owns one upstream and is mounted under one route prefix:

- OpenRouterAdapter: /openrouter -> https://openrouter.ai/api/v1
- ModelScopeAdapter: /modelscope -> https://api-inference.modelscope.cn
- GeminiAdapter:     /gemini     -> https://generativelanguage.googleapis.com
"""

from switchyard.gateway.providers.base import ProviderAdapter
from switchyard.gateway.providers.gemini import GeminiAdapter
from switchyard.gateway.providers.modelscope import ModelScopeAdapter
from switchyard.gateway.providers.openrouter import OpenRouterAdapter

__all__ = [
    "GeminiAdapter",
    "ModelScopeAdapter",
    "OpenRouterAdapter",
    "ProviderAdapter",
]
