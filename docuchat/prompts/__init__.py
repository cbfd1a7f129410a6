"""
Prompt templates for chat and summaries
"""

from docuchat.prompts.base import PromptBuilder

__all__ = ["PromptBuilder"]
