"""
Utility components for the PSF toolkit
"""

from .llm_client import LLMClient

__all__ = [
    'LLMClient'
]
