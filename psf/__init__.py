"""
PSF - Predictability Spectrum Framework toolkit
===============================================

Estimates how predictable an AI system's outputs are along three dimensions
and maps the result onto a five-level spectrum with design guidance.

Core Components:
- Empirical and mental-model distribution construction
- Entropy, confidence and KL-based learning scores
- Semantic classifier adapter with multi-sample stability estimation
- Probe aggregation blending exact and semantic estimates
- Profile-driven modifiers and design guidance
"""

__version__ = "0.1.0"

from .core.exceptions import PSFError
from .core.config import Config
from .core.system import PSFSystem

__all__ = [
    'PSFSystem',
    'Config',
    'PSFError'
]
