"""
Predictability estimation components
"""

from .distribution_builder import build_empirical, build_mental_model
from .information_metrics import temporal_metrics, compute_c, compute_l
from .semantic_estimator import SemanticEstimator
from .aggregator import Aggregator
from .modifiers import compute_modifiers
from .guidance import compute_guidance
from .levels import score_to_level

__all__ = [
    'build_empirical',
    'build_mental_model',
    'temporal_metrics',
    'compute_c',
    'compute_l',
    'SemanticEstimator',
    'Aggregator',
    'compute_modifiers',
    'compute_guidance',
    'score_to_level'
]
