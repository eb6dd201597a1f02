"""Text-generation providers for GitNarrator.

This package provides:
- The optional text-generation port (TextGenerator)
- An OpenAI-compatible implementation (OpenAITextGenerator)
- Construction from settings (build_text_generator)
"""

from narrator.app.providers.base import TextGenerator
from narrator.app.providers.openai import OpenAITextGenerator, build_text_generator

__all__ = [
    "TextGenerator",
    "OpenAITextGenerator",
    "build_text_generator",
]
