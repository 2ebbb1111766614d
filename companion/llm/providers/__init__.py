from companion.llm.providers.base import Provider
from companion.llm.providers.openai_compat import OpenAICompatProvider

__all__ = ["OpenAICompatProvider", "Provider"]
