"""Switchyard - reverse-proxy gateway for AI provider APIs.

Requests are routed by path prefix to OpenRouter, ModelScope or Google
Gemini, with per-provider path/header rewriting, API key load balancing
and uniform JSON error envelopes.
"""

__version__ = "0.1.0"
