"""
Empirical and mental-model distribution construction

P_t is built from observed output samples; Q_t^u from what the user expects
to see. Both are returned as fresh immutable Distribution values.
"""

import logging
from collections import Counter
from typing import Dict, Iterable, Optional

from .types import Distribution, EmpiricalDistribution, UserExpectations

logger = logging.getLogger(__name__)

SMOOTHING_EPSILON = 0.01
DEFAULT_CONCENTRATION = 0.8
ANCHOR_MIN = 0.10
ANCHOR_MAX = 0.95


def valid_samples(samples: Iterable[str]) -> list:
    """Trim samples and drop the ones that are empty afterwards."""
    return [s.strip() for s in samples if s is not None and s.strip()]


def build_empirical(samples: Iterable[str]) -> Optional[EmpiricalDistribution]:
    """Build P_t. Returns None when no non-empty sample survives trimming."""
    valid = valid_samples(samples)
    if not valid:
        return None

    counts = Counter(valid)
    n = len(valid)
    return EmpiricalDistribution(
        masses={outcome: count / n for outcome, count in counts.items()},
        valid_count=n,
    )


def build_mental_model(p_t: Optional[Distribution],
                       expectation: Optional[UserExpectations] = None) -> Distribution:
    """Build the smoothed user mental model Q_t^u over the outcomes of P_t.

    With an expected output, that output (matched case-insensitively against
    the observed outcomes, or added as a new outcome) receives a concentrated
    share and the remainder is spread evenly over the other observed outcomes.
    Without one, the model is uniform over the observed outcomes.
    """
    omega = list(p_t) if p_t is not None else []
    expectation = expectation or UserExpectations()

    if expectation.expected_output is not None:
        q = _anchored_model(omega, expectation)
    else:
        size = len(omega) or 1
        q = {outcome: 1.0 / size for outcome in omega}

    return Distribution(masses=smooth(q))


def _anchored_model(omega: list, expectation: UserExpectations) -> Dict[str, float]:
    anchor = expectation.expected_output.strip()
    if expectation.expected_variation is not None:
        concentration = 1.0 - expectation.expected_variation
    else:
        concentration = DEFAULT_CONCENTRATION
    p_anchor = max(ANCHOR_MIN, min(ANCHOR_MAX, concentration))

    anchor_key = anchor.lower()
    matches = [x for x in omega if x.lower() == anchor_key]

    if matches:
        others = len(omega) - len(matches)
        share = (1.0 - p_anchor) / others if others else 0.0
        return {x: (p_anchor if x.lower() == anchor_key else share) for x in omega}

    # Anchor is a hypothesised outcome nobody observed
    logger.debug(f"Expected output not among {len(omega)} observed outcomes; adding it as anchor")
    share = (1.0 - p_anchor) / len(omega) if omega else 0.0
    q = {x: share for x in omega}
    q[anchor] = p_anchor
    return q


def smooth(q: Dict[str, float], epsilon: float = SMOOTHING_EPSILON) -> Dict[str, float]:
    """Mix with a uniform distribution at weight epsilon, then renormalise."""
    if not q:
        return {}

    uniform = epsilon / len(q)
    smoothed = {x: (1.0 - epsilon) * p + uniform for x, p in q.items()}
    total = sum(smoothed.values())
    if total == 0:
        return smoothed
    return {x: p / total for x, p in smoothed.items()}
