"""
LLM integration for patch candidate generation.

Provides the adapter that turns a fault into a repair prompt, calls a chat
client and parses tagged fix blocks into patch candidates.
"""

from .clients import openai

__all__ = ["openai"]
