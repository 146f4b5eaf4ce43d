from __future__ import annotations

import pytest

from conftest import ScriptedOracle, reply
from psf.core.exceptions import TransportError
from psf.inference.aggregator import Aggregator
from psf.inference.distribution_builder import build_empirical, build_mental_model
from psf.inference.information_metrics import compute_l
from psf.inference.semantic_estimator import SemanticEstimator
from psf.inference.types import SystemProfile, UserExpectations


def make(replies, max_classified: int = 10):
    oracle = ScriptedOracle(replies)
    return Aggregator(SemanticEstimator(oracle), max_classified=max_classified), oracle


def test_single_estimate_used_directly() -> None:
    agg, oracle = make([reply(T=0.9, C=0.8, L=0.7, level=2)])
    out = agg.run_probe(None, "prompt", response="an answer")
    assert out.level == 2
    assert out.dimensions.to_dict() == pytest.approx({"T": 0.9, "C": 0.8, "L": 0.7})
    assert out.overall_score == pytest.approx(0.8)
    assert out.metrics.to_dict() == {}
    assert oracle.calls == [(None, "prompt", "an answer")]


def test_transport_error_falls_back_to_heuristics() -> None:
    agg, _ = make([TransportError("service unavailable")])
    out = agg.run_probe(SystemProfile(), "prompt", response="r")
    assert out.dimensions.to_dict() == pytest.approx({"T": 0.8, "C": 0.7, "L": 0.6})
    assert out.level == 2
    assert any("Falling back to heuristic scores" in n for n in out.notes)
    assert any("service unavailable" in n for n in out.notes)


def test_unparseable_reply_falls_back_to_heuristics() -> None:
    agg, _ = make(["definitely not json"])
    out = agg.run_probe(None, "prompt")
    assert out.dimensions.to_dict() == pytest.approx({"T": 0.8, "C": 0.7, "L": 0.6})
    assert any("no usable result" in n for n in out.notes)


def test_missing_level_derived_from_scores() -> None:
    agg, _ = make([reply(T=0.95, C=0.95, L=0.92)])
    assert agg.run_probe(None, "p").level == 1

    agg, _ = make([reply(T=0.1, C=0.1, L=0.1)])
    assert agg.run_probe(None, "p").level == 5


def test_derived_level_ignores_exact_blending() -> None:
    agg, _ = make([reply(T=0.9, C=0.85, L=0.9)])
    out = agg.run_probe(None, "p", samples=["a"], expectations=UserExpectations(expected_variation=0.0))
    # exact C lifts the overall score past 0.90, but the level stays with the semantic mean (~0.883)
    assert out.dimensions.C > 0.85
    assert out.overall_score >= 0.90
    assert out.level == 2


@pytest.mark.parametrize("raw", [
    '{"T": 0.5, "C": 0.5, "L": 0.5, "level": NaN}',
    '{"T": 0.5, "C": 0.5, "L": 0.5, "level": Infinity}',
    '{"T": 0.5, "C": 0.5, "L": 0.5, "level": -Infinity}',
])
def test_non_finite_level_is_ignored(raw: str) -> None:
    agg, _ = make([raw])
    out = agg.run_probe(None, "p")
    assert out.level == 3
    assert out.dimensions.to_dict() == pytest.approx({"T": 0.5, "C": 0.5, "L": 0.5})


def test_reported_level_rounded_and_clamped() -> None:
    agg, _ = make([reply(T=0.5, C=0.5, L=0.5, level=4.6)])
    assert agg.run_probe(None, "p").level == 5
    agg, _ = make([reply(T=0.5, C=0.5, L=0.5, level=9)])
    assert agg.run_probe(None, "p").level == 5
    agg, _ = make([reply(T=0.5, C=0.5, L=0.5, level=2.5)])
    assert agg.run_probe(None, "p").level == 3


def test_partial_dimensions_keep_defaults_but_take_level_and_note() -> None:
    agg, _ = make([reply(T=0.2, level=4, note="varies a lot", rationale={"overall": "mixed"})])
    out = agg.run_probe(None, "p")
    assert out.dimensions.to_dict() == pytest.approx({"T": 0.8, "C": 0.7, "L": 0.6})
    assert out.level == 4
    assert "varies a lot" in out.notes
    assert out.rationale.overall == "mixed"


def test_single_sample_is_classified_as_the_response() -> None:
    agg, oracle = make([reply(T=0.9, C=0.8, L=0.7, level=2)])
    out = agg.run_probe(None, "p", samples=["only output"])
    assert oracle.calls[0][2] == "only output"
    assert out.metrics.temporal_entropy == 0.0
    assert out.metrics.temporal_variation_rate == 1.0


def test_repeated_classification_stability_is_blended_into_t() -> None:
    oracle = ScriptedOracle([reply(T=0.9, C=0.8, L=0.7, level=2), reply(T=0.5, C=0.8, L=0.7, level=2)])
    agg = Aggregator(SemanticEstimator(oracle, samples=2))
    out = agg.run_probe(None, "p", response="r")
    assert out.metrics.temporal_stability_from_classifier == pytest.approx(0.6)
    assert out.dimensions.T == pytest.approx(0.7 * 0.9 + 0.3 * 0.6)
    assert any("Temporal stability proxy" in n for n in out.notes)


def test_multi_sample_average_and_blend() -> None:
    agg, oracle = make([
        reply(T=0.9, C=0.6, L=0.5, level=2),
        reply(T=0.7, C=0.6, L=0.5, level=3),
        reply(T=0.8, C=0.6, L=0.5, level=3),
    ])
    out = agg.run_probe(None, "p", samples=["a", "b", "c"])
    assert [call[2] for call in oracle.calls] == ["a", "b", "c"]
    assert out.metrics.temporal_stability_from_classifier == pytest.approx(0.8)
    assert out.dimensions.T == pytest.approx(0.7 * 0.8 + 0.3 * 0.8)
    assert out.dimensions.C == pytest.approx(0.6)
    assert out.dimensions.L == pytest.approx(0.5)
    assert out.level == 3
    assert out.metrics.temporal_entropy == pytest.approx(1.0)
    assert out.metrics.temporal_variation_rate == pytest.approx(1.0)


def test_classification_capped_but_metrics_use_all_samples() -> None:
    samples = ["a"] * 6 + ["b"] * 6
    agg, oracle = make([reply(T=0.8, C=0.7, L=0.6, level=2)] * 12)
    out = agg.run_probe(None, "p", samples=samples)
    assert len(oracle.calls) == 10
    assert out.metrics.temporal_variation_rate == pytest.approx(2 / 12)
    assert out.metrics.temporal_entropy == pytest.approx(1.0)


def test_configured_cap_respected() -> None:
    agg, oracle = make([reply(T=0.8, C=0.7, L=0.6)] * 5, max_classified=3)
    agg.run_probe(None, "p", samples=["a", "b", "c", "d", "e"])
    assert len(oracle.calls) == 3


def test_multi_sample_first_transport_failure_is_fatal() -> None:
    agg, oracle = make([TransportError("down"), reply(T=0.1, C=0.1, L=0.1, level=5)])
    out = agg.run_probe(None, "p", samples=["a", "b"])
    assert len(oracle.calls) == 1
    assert out.dimensions.to_dict() == pytest.approx({"T": 0.8, "C": 0.7, "L": 0.6})
    assert out.level == 2
    assert any("Falling back" in n for n in out.notes)
    # temporal metrics do not depend on the classifier
    assert out.metrics.temporal_variation_rate == pytest.approx(1.0)


def test_multi_sample_later_failures_skipped() -> None:
    agg, oracle = make([
        reply(T=0.6, C=0.4, L=0.2, level=3),
        TransportError("flaky"),
        reply(T=0.6, C=0.6, L=0.4, level=3),
    ])
    out = agg.run_probe(None, "p", samples=["a", "b", "c"])
    assert len(oracle.calls) == 3
    assert out.dimensions.C == pytest.approx(0.5)
    assert out.dimensions.L == pytest.approx(0.3)
    assert out.dimensions.T == pytest.approx(0.7 * 0.6 + 0.3 * 1.0)
    assert any("2 of 3" in n for n in out.notes)


def test_multi_sample_first_parse_failure_is_skipped() -> None:
    agg, oracle = make(["nope", reply(T=0.5, C=0.5, L=0.5, level=3)])
    out = agg.run_probe(None, "p", samples=["a", "b"])
    assert len(oracle.calls) == 2
    assert out.dimensions.C == pytest.approx(0.5)
    assert out.metrics.temporal_stability_from_classifier is None
    assert out.dimensions.T == pytest.approx(0.5)


def test_multi_sample_without_levels_defaults_to_two() -> None:
    agg, _ = make([reply(T=0.1, C=0.1, L=0.1), reply(T=0.1, C=0.1, L=0.1)])
    out = agg.run_probe(None, "p", samples=["a", "b"])
    assert out.level == 2


def test_all_samples_unparseable_retries_once_with_primary_response() -> None:
    agg, oracle = make(["bad", "bad", "bad", reply(T=0.3, C=0.4, L=0.5, level=4)])
    out = agg.run_probe(None, "p", samples=["  ", "x", "y"])
    assert len(oracle.calls) == 4
    assert oracle.calls[-1][2] == "x"
    assert out.dimensions.to_dict() == pytest.approx({"T": 0.3, "C": 0.4, "L": 0.5})
    assert out.level == 4


def test_all_samples_unparseable_and_retry_fails() -> None:
    agg, oracle = make(["bad", "bad", TransportError("gone")])
    out = agg.run_probe(None, "p", samples=["x", "y"], response="primary")
    assert len(oracle.calls) == 3
    assert oracle.calls[-1][2] == "primary"
    assert out.dimensions.to_dict() == pytest.approx({"T": 0.8, "C": 0.7, "L": 0.6})
    assert any("gone" in n for n in out.notes)


def test_expected_variation_blends_exact_confidence() -> None:
    agg, _ = make([reply(T=0.9, C=0.8, L=0.7, level=2)] * 3)
    expectations = UserExpectations(expected_variation=0.5)
    out = agg.run_probe(None, "p", samples=["a", "a", "b"], expectations=expectations)
    # uniform mental model over {a, b} stays at 0.5 after smoothing; every outcome is typical
    assert out.dimensions.C == pytest.approx(0.5 * 0.8 + 0.5 * 0.5)
    assert out.dimensions.L == pytest.approx(0.7)
    assert out.dimensions.T == pytest.approx(0.7 * 0.9 + 0.3 * 1.0)


def test_expected_output_blends_exact_learning() -> None:
    samples = ["a", "a", "b"]
    expectations = UserExpectations(expected_output="a")
    agg, _ = make([reply(T=0.9, C=0.8, L=0.7, level=2)] * 3)
    out = agg.run_probe(None, "p", samples=samples, expectations=expectations)

    p = build_empirical(samples)
    l_exact = compute_l(p, build_mental_model(p, expectations))
    assert out.dimensions.L == pytest.approx(0.5 * 0.7 + 0.5 * l_exact)
    # no expected variation, so C is untouched
    assert out.dimensions.C == pytest.approx(0.8)


def test_blank_samples_reach_alignment_and_similarity_fallbacks() -> None:
    agg, _ = make([reply(T=0.9, C=0.8, L=0.7, level=2)] * 2)
    expectations = UserExpectations(expected_output="hello world", expected_variation=0.3)
    out = agg.run_probe(None, "p", samples=["  ", ""], expectations=expectations, response="hello")
    assert out.metrics.temporal_entropy is None
    alignment = 1.0 - abs(0.3 - 0.0)
    assert out.dimensions.C == pytest.approx(0.7 * 0.8 + 0.3 * alignment)
    assert out.dimensions.L == pytest.approx(0.6 * 0.7 + 0.4 * 0.5)


def test_expectations_ignored_without_samples() -> None:
    agg, _ = make([reply(T=0.9, C=0.8, L=0.7, level=2)])
    out = agg.run_probe(None, "p", expectations=UserExpectations(expected_output="x", expected_variation=0.1),
                        response="x")
    assert out.dimensions.to_dict() == pytest.approx({"T": 0.9, "C": 0.8, "L": 0.7})


def test_output_carries_modifiers_and_guidance() -> None:
    agg, _ = make([reply(T=0.2, C=0.2, L=0.2, level=5)])
    profile = SystemProfile(stakes="high", expertise="novice")
    out = agg.run_probe(profile, "p")
    ids = [item.id for item in out.guidance]
    assert "l5-advisory-surface" in ids
    assert "safety-high-stakes" in ids
    assert "novice-transition" in ids
    assert out.modifiers.S == pytest.approx(0.85)
    assert out.version == "0.1.0"


def test_probes_do_not_share_state() -> None:
    agg, _ = make([TransportError("down"), reply(T=0.9, C=0.9, L=0.9, level=1)])
    first = agg.run_probe(None, "p")
    second = agg.run_probe(None, "p")
    assert first.dimensions.T == pytest.approx(0.8)
    assert second.dimensions.T == pytest.approx(0.9)
    assert second.notes == []
