"""
LLM Provider — factory.
"""

from repaircheck.llm import LLMProvider


def get_provider(provider_name: str = "gemini") -> LLMProvider:
    """Factory — returns the configured LLM provider."""
    if provider_name == "gemini":
        from repaircheck.llm.gemini import GeminiProvider
        return GeminiProvider()
    else:
        raise ValueError(f"Unknown LLM provider: {provider_name}")
