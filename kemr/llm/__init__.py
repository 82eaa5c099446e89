"""
LLM integration for the dashboard.
"""

from .client import LLMClient, PromptBuilder, get_client, set_client
from .summary import LOADING_MESSAGES, build_summary_prompt, generate_clinical_summary

__all__ = [
    "LLMClient",
    "PromptBuilder",
    "get_client",
    "set_client",
    "LOADING_MESSAGES",
    "build_summary_prompt",
    "generate_clinical_summary",
]
