"""
Modifier scores derived from the system profile
"""

from typing import Optional

from .types import ModifierScores, SystemProfile, clamp01

# Baselines sit roughly at a Level 2-3 surface
BASELINE_MODIFIERS = {
    'O': 0.6, 'I': 0.5, 'X': 0.5, 'Lp': 0.8,
    'F': 0.6, 'S': 0.6, 'A': 0.5, 'D': 0.4,
}


def compute_modifiers(profile: Optional[SystemProfile] = None) -> ModifierScores:
    """Apply the additive profile rules to the baseline modifiers."""
    m = dict(BASELINE_MODIFIERS)
    if profile is None:
        return ModifierScores(**m)

    def bump(key: str, delta: float) -> None:
        m[key] = clamp01(m[key] + delta)

    if profile.stakes == 'high':
        bump('S', 0.25)
        bump('O', 0.10)
    elif profile.stakes == 'low':
        bump('S', -0.10)

    if profile.expertise == 'novice':
        bump('O', 0.10)
        bump('F', 0.10)
    elif profile.expertise == 'expert':
        bump('O', -0.05)

    if profile.confidence_badges:
        bump('O', 0.15)
    if profile.interrupt_button:
        bump('I', 0.20)
    if profile.safe_mode:
        bump('S', 0.20)
    if profile.rationale_view:
        bump('O', 0.10)
        bump('A', 0.05)

    return ModifierScores(**m)
