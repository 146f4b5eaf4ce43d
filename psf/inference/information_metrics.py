"""
Information-theoretic predictability metrics

Pure functions over output samples and distributions:
- temporal_metrics: normalised Shannon entropy and variation rate (T proxy)
- compute_c: exact confidence score from P_t and Q_t^u
- compute_l: exact learning score from the KL divergence of P_t from Q_t^u

Sums go through math.fsum so results do not depend on map iteration order.
"""

import math
import re
from collections import Counter
from typing import Optional, Sequence

import numpy as np

from .types import Distribution, TemporalMetrics, clamp01
from .distribution_builder import valid_samples

# Stand-in for Q(x) when the mental model gives an observed outcome no mass
KL_FALLBACK_Q = 0.0001

_TOKEN_RE = re.compile(r"\w+")


def shannon_entropy(probabilities: Sequence[float]) -> float:
    """Shannon entropy in bits, ignoring zero-probability entries."""
    p = np.asarray(probabilities, dtype=float)
    p = p[p > 0]
    if p.size == 0:
        return 0.0
    return float(-np.sum(p * np.log2(p)))


def temporal_metrics(samples: Sequence[str]) -> Optional[TemporalMetrics]:
    """Entropy and variation rate of raw output samples.

    The variation rate divides distinct non-empty outputs by the raw sample
    count (blank samples included); the entropy is computed over the non-empty
    samples only and normalised by log2(distinct). Returns None when no sample
    is non-empty.
    """
    valid = valid_samples(samples)
    if not valid:
        return None

    counts = Counter(valid)
    distinct = len(counts)
    n_valid = len(valid)

    variation_rate = distinct / len(samples)

    if distinct <= 1:
        return TemporalMetrics(entropy=0.0, variation_rate=variation_rate)

    entropy = shannon_entropy([c / n_valid for c in counts.values()])
    return TemporalMetrics(entropy=entropy / math.log2(distinct), variation_rate=variation_rate)


def median_mass(p_t: Distribution) -> float:
    """Threshold theta: element floor(n/2) of the masses sorted descending."""
    masses = sorted(p_t.masses.values(), reverse=True)
    return masses[len(masses) // 2]


def compute_c(p_t: Optional[Distribution], q: Distribution) -> Optional[float]:
    """Confidence score: mass-weighted mental-model agreement on the typical outcomes.

    The typical set E_t holds every outcome whose empirical mass is at least
    the median mass. Returns None when P_t is absent or empty.
    """
    if p_t is None or len(p_t) == 0:
        return None

    theta = median_mass(p_t)
    typical = [x for x, p in p_t.items() if p >= theta]
    if not typical:
        return 0.0

    numerator = math.fsum(p_t.masses[x] * q.get(x, 0.0) for x in typical)
    denominator = math.fsum(p_t.masses[x] for x in typical)
    if denominator == 0:
        return 0.0
    return numerator / denominator


def kl_divergence(p_t: Distribution, q: Distribution) -> Optional[float]:
    """D_KL(P_t || Q) in bits; None if no outcome of P_t carries mass."""
    terms = []
    for x, p in p_t.items():
        if p <= 0:
            continue
        qx = q.get(x)
        if qx is None or qx <= 0:
            qx = KL_FALLBACK_Q
        terms.append(p * math.log2(p / qx))

    if not terms:
        return None
    return math.fsum(terms)


def compute_l(p_t: Optional[Distribution], q_smooth: Distribution) -> Optional[float]:
    """Learning score exp(-D_KL / H_max), H_max = log2 |Omega|.

    A single observed outcome is fully learnable and scores 1.
    """
    if p_t is None or len(p_t) == 0:
        return None

    h_max = math.log2(len(p_t))
    if h_max == 0:
        return 1.0

    d_kl = kl_divergence(p_t, q_smooth)
    if d_kl is None:
        return None

    lam = 1.0 / h_max
    return clamp01(math.exp(-lam * d_kl))


def token_jaccard(a: str, b: str) -> float:
    """Jaccard similarity of the lower-cased word token sets of two texts."""
    tokens_a = set(_TOKEN_RE.findall(a.lower()))
    tokens_b = set(_TOKEN_RE.findall(b.lower()))
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)


def stability_from_spread(values: Sequence[float]) -> Optional[float]:
    """1 - (max - min) over repeated estimates, clamped; None for fewer than two."""
    if len(values) < 2:
        return None
    return clamp01(1.0 - (max(values) - min(values)))
