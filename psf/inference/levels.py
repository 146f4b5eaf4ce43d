"""
PSF level catalog and score-to-level mapping
"""

import math
from typing import Dict, Any

# Lower bound of the overall score for levels 1..4; anything below is level 5
LEVEL_THRESHOLDS = (
    (0.90, 1),
    (0.65, 2),
    (0.35, 3),
    (0.15, 4),
)

LEVELS: Dict[int, Dict[str, Any]] = {
    1: {
        'label': 'Fully predictable',
        'summary': 'Always gives the same output for the same input. Works like a calculator or search function.',
    },
    2: {
        'label': 'Mostly predictable',
        'summary': 'Usually consistent, with small variations that users learn quickly.',
    },
    3: {
        'label': 'Predictable with practice',
        'summary': 'Users learn patterns over time, but outputs vary noticeably.',
    },
    4: {
        'label': 'Often surprising',
        'summary': 'Useful but frequently unexpected. Users need to check outputs carefully.',
    },
    5: {
        'label': 'Open-ended and unstable',
        'summary': "Highly creative or unpredictable. Hard to know what you'll get.",
    },
}


def score_to_level(overall: float) -> int:
    """Map an overall T/C/L mean onto the five-level spectrum (monotone non-increasing)."""
    for threshold, level in LEVEL_THRESHOLDS:
        if overall >= threshold:
            return level
    return 5


def clamp_level(raw: float) -> int:
    """Round a classifier-reported level and clamp it to 1..5."""
    # half-up, so 2.5 -> 3 (round() would give 2)
    rounded = math.floor(raw + 0.5)
    return min(5, max(1, rounded))


def level_label(level: int) -> str:
    return f"Level {level} · {LEVELS[level]['label']}"
