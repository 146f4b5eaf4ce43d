"""
Probe aggregation

Merges semantic estimates with the exact distribution-based scores into the
final T/C/L dimensions and level for a probe:

1. classify up to k samples one at a time (k = min(cap, n) when n > 1, else 1)
2. average the successful estimates and blend in their T spread as a
   stability proxy, or use the single estimate directly; a missing level
   is derived from these semantic scores
3. compute temporal entropy/variation over *all* samples
4. blend the exact C and L scores when the user stated expectations

Oracle calls are issued sequentially: the first attempt decides whether a
failure is fatal for the probe.
"""

import logging
from statistics import mean
from typing import List, Optional, Sequence

from .distribution_builder import build_empirical, build_mental_model, valid_samples
from .guidance import compute_guidance
from .information_metrics import (
    compute_c, compute_l, stability_from_spread, temporal_metrics, token_jaccard,
)
from .levels import clamp_level, score_to_level
from .modifiers import compute_modifiers
from .semantic_estimator import SemanticEstimator
from .types import (
    ClassificationOutput, DimensionRationale, DimensionScores, PredictabilityMetrics,
    SemanticEstimate, SystemProfile, UserExpectations, clamp01,
)

logger = logging.getLogger(__name__)

# Used only when the semantic estimator yields nothing
HEURISTIC_DEFAULTS = DimensionScores(T=0.8, C=0.7, L=0.6)

DEFAULT_MAX_CLASSIFIED = 10
DEFAULT_MULTI_SAMPLE_LEVEL = 2

# Blend weights, (current, incoming)
STABILITY_BLEND = (0.7, 0.3)
EXACT_C_BLEND = (0.5, 0.5)
ALIGNMENT_BLEND = (0.7, 0.3)
EXACT_L_BLEND = (0.5, 0.5)
JACCARD_BLEND = (0.6, 0.4)


def blend(current: float, incoming: float, weights) -> float:
    w_current, w_incoming = weights
    return clamp01(w_current * current + w_incoming * incoming)


class _ProbeState:
    """Mutable working values for one probe; never shared between probes."""

    def __init__(self):
        self.dims = HEURISTIC_DEFAULTS.clamped()
        self.level: Optional[int] = None
        self.notes: List[str] = []
        self.rationale: Optional[DimensionRationale] = None
        self.stability: Optional[float] = None


class Aggregator:
    """
    Runs the full estimation pipeline for a probe
    """

    def __init__(self, estimator: SemanticEstimator, max_classified: int = DEFAULT_MAX_CLASSIFIED):
        self.estimator = estimator
        self.max_classified = max(1, max_classified)

    def classified_count(self, samples: Sequence[str]) -> int:
        """Number of samples sent to the classifier individually."""
        if len(samples) > 1:
            return min(self.max_classified, len(samples))
        return 1

    def run_probe(self, profile: Optional[SystemProfile], prompt: str,
                  samples: Optional[Sequence[str]] = None,
                  expectations: Optional[UserExpectations] = None,
                  description: Optional[str] = None,
                  response: Optional[str] = None) -> ClassificationOutput:
        """Classify a probe and return the final output; never raises on oracle failure."""
        samples = list(samples or [])
        state = _ProbeState()

        k = self.classified_count(samples)
        logger.info(f"Running probe with {len(samples)} samples ({k} classified)")

        primary = self._primary_response(samples, response)
        if k > 1:
            self._classify_many(state, description, prompt, samples[:k], primary)
        else:
            self._classify_single(state, description, prompt, primary)

        # Level is fixed from the semantic scores, before exact C/L blending
        if state.level is None:
            state.level = score_to_level(state.dims.clamped().overall)

        metrics = PredictabilityMetrics(temporal_stability_from_classifier=state.stability)
        variation_rate = 0.0
        if samples:
            temporal = temporal_metrics(samples)
            if temporal is not None:
                metrics.temporal_entropy = temporal.entropy
                metrics.temporal_variation_rate = temporal.variation_rate
                variation_rate = temporal.variation_rate

        if expectations is not None and not expectations.is_empty() and samples:
            self._blend_exact_scores(state, samples, expectations, primary, variation_rate)

        dims = state.dims.clamped()
        level = state.level
        modifiers = compute_modifiers(profile)

        return ClassificationOutput(
            level=level,
            dimensions=dims,
            overall_score=dims.overall,
            modifiers=modifiers,
            metrics=metrics,
            rationale=state.rationale,
            guidance=compute_guidance(level, dims, modifiers, profile),
            notes=state.notes,
        )

    def _primary_response(self, samples: Sequence[str], response: Optional[str]) -> Optional[str]:
        if response is not None and response.strip():
            return response
        valid = valid_samples(samples)
        return valid[0] if valid else None

    def _fail(self, state: _ProbeState, error) -> None:
        logger.error(f"Semantic classification failed: {error}")
        state.notes.append(f"Semantic classification failed: {error}. Falling back to heuristic scores.")

    def _classify_single(self, state: _ProbeState, description: Optional[str], prompt: str,
                         response: Optional[str]) -> None:
        outcome = self.estimator.estimate(description, prompt, response)
        if outcome.error is not None:
            self._fail(state, outcome.error)
            return
        if not outcome.ok:
            state.notes.append("Semantic classifier returned no usable result. Using heuristic scores.")
            return

        estimate = outcome.estimate
        if estimate.has_dimensions():
            state.dims = DimensionScores(T=estimate.T, C=estimate.C, L=estimate.L)
        if estimate.temporal_stability is not None:
            state.dims.T = blend(state.dims.T, estimate.temporal_stability, STABILITY_BLEND)
            state.stability = estimate.temporal_stability
            state.notes.append(
                f"Temporal stability proxy from repeated classification: {estimate.temporal_stability:.2f}"
            )
        if estimate.level is not None:
            state.level = clamp_level(estimate.level)
        self._collect_commentary(state, estimate)

    def _classify_many(self, state: _ProbeState, description: Optional[str], prompt: str,
                       batch: Sequence[str], primary: Optional[str]) -> None:
        estimates: List[SemanticEstimate] = []

        for i, sample in enumerate(batch):
            outcome = self.estimator.estimate(description, prompt, sample, samples=1)
            if outcome.error is not None:
                if i == 0:
                    self._fail(state, outcome.error)
                    return
                logger.warning(f"Skipping sample {i + 1}/{len(batch)} after classifier error: {outcome.error}")
                continue
            if not outcome.ok:
                logger.warning(f"Skipping sample {i + 1}/{len(batch)}: unparseable classifier reply")
                continue
            estimates.append(outcome.estimate)

        if not estimates:
            logger.warning("No sample could be classified individually; retrying once with a single call")
            self._classify_single(state, description, prompt, primary)
            return

        def average(key: str, fallback: float) -> float:
            values = [getattr(e, key) for e in estimates if getattr(e, key) is not None]
            return mean(values) if values else fallback

        avg_t = average('T', state.dims.T)
        state.dims = DimensionScores(T=avg_t, C=average('C', state.dims.C), L=average('L', state.dims.L))

        stability = stability_from_spread([e.T for e in estimates if e.T is not None])
        if stability is not None:
            state.dims.T = blend(avg_t, stability, STABILITY_BLEND)
            state.stability = stability
            state.notes.append(f"Temporal stability across {len(estimates)} classified samples: {stability:.2f}")

        levels = [e.level for e in estimates if e.level is not None]
        state.level = clamp_level(mean(levels)) if levels else DEFAULT_MULTI_SAMPLE_LEVEL

        state.notes.append(f"Averaged semantic estimates over {len(estimates)} of {len(batch)} samples.")
        self._collect_commentary(state, estimates[0])

    def _collect_commentary(self, state: _ProbeState, estimate: SemanticEstimate) -> None:
        if estimate.note:
            state.notes.append(estimate.note)
        if estimate.rationale is not None:
            state.rationale = estimate.rationale

    def _blend_exact_scores(self, state: _ProbeState, samples: Sequence[str],
                            expectations: UserExpectations, primary: Optional[str],
                            variation_rate: float) -> None:
        p_t = build_empirical(samples)
        q = build_mental_model(p_t, expectations)

        if expectations.expected_variation is not None:
            c_exact = compute_c(p_t, q)
            if c_exact is not None:
                state.dims.C = blend(state.dims.C, c_exact, EXACT_C_BLEND)
                state.notes.append(f"Exact confidence score C={c_exact:.2f} blended with the semantic estimate.")
            else:
                # Only reachable when every sample is blank
                alignment = 1.0 - abs(expectations.expected_variation - variation_rate)
                state.dims.C = blend(state.dims.C, alignment, ALIGNMENT_BLEND)
                state.notes.append(f"Variation alignment {alignment:.2f} blended into C.")

        if expectations.expected_output is not None and primary is not None:
            l_exact = compute_l(p_t, q)
            if l_exact is not None:
                state.dims.L = blend(state.dims.L, l_exact, EXACT_L_BLEND)
                state.notes.append(f"Exact learning score L={l_exact:.2f} blended with the semantic estimate.")
            else:
                similarity = token_jaccard(expectations.expected_output, primary)
                state.dims.L = blend(state.dims.L, similarity, JACCARD_BLEND)
                state.notes.append(f"Expected-output similarity {similarity:.2f} blended into L.")
