from __future__ import annotations

import pytest

from psf.inference.distribution_builder import build_empirical, build_mental_model, smooth
from psf.inference.types import Distribution, UserExpectations


def test_empirical_masses_sum_to_one_over_valid_samples() -> None:
    p = build_empirical(["a", " a ", "b", "", "   "])
    assert p is not None
    assert p.valid_count == 3
    assert p.get("a") == pytest.approx(2 / 3)
    assert p.get("b") == pytest.approx(1 / 3)
    assert p.total() == pytest.approx(1.0, abs=1e-9)


def test_empirical_none_when_every_sample_blank() -> None:
    assert build_empirical(["", "  ", "\n"]) is None
    assert build_empirical([]) is None


def test_empirical_single_outcome_is_a_distribution() -> None:
    p = build_empirical(["same", "same"])
    assert p is not None
    assert dict(p.masses) == {"same": 1.0}


def test_empirical_uses_exact_string_equality() -> None:
    p = build_empirical(["Yes", "yes", "yes."])
    assert p is not None
    assert len(p) == 3


def test_distribution_is_immutable() -> None:
    p = build_empirical(["a", "b"])
    with pytest.raises(TypeError):
        p.masses["a"] = 1.0


def test_uniform_mental_model_stays_near_half() -> None:
    p = build_empirical(["x", "y"])
    q = build_mental_model(p)
    assert set(q) == {"x", "y"}
    for outcome in ("x", "y"):
        assert 0.45 < q.get(outcome) < 0.55
    assert q.total() == pytest.approx(1.0)


def test_anchor_matched_case_insensitively() -> None:
    p = build_empirical(["Yes", "No", "Maybe"])
    q = build_mental_model(p, UserExpectations(expected_output="yes", expected_variation=0.2))
    assert set(q) == {"Yes", "No", "Maybe"}
    assert q.get("Yes") == pytest.approx(0.99 * 0.8 + 0.01 / 3)
    assert q.get("No") == pytest.approx(0.99 * 0.1 + 0.01 / 3)
    assert q.total() == pytest.approx(1.0)


def test_unobserved_anchor_is_added_and_others_share_remainder() -> None:
    p = build_empirical(["a", "b"])
    q = build_mental_model(p, UserExpectations(expected_output="c"))
    assert set(q) == {"a", "b", "c"}
    assert q.get("c") == pytest.approx(0.99 * 0.8 + 0.01 / 3)
    assert q.get("a") == pytest.approx(0.99 * 0.1 + 0.01 / 3)
    assert q.get("a") == pytest.approx(q.get("b"))


@pytest.mark.parametrize(
    "variation, expected_anchor",
    [(0.0, 0.95), (1.0, 0.10), (0.4, 0.6)],
)
def test_anchor_concentration_is_clamped(variation: float, expected_anchor: float) -> None:
    p = build_empirical(["a", "b"])
    q = build_mental_model(p, UserExpectations(expected_output="a", expected_variation=variation))
    assert q.get("a") == pytest.approx(0.99 * expected_anchor + 0.005)


def test_anchor_alone_in_domain_gets_all_mass() -> None:
    p = build_empirical(["only"])
    q = build_mental_model(p, UserExpectations(expected_output="ONLY"))
    assert dict(q.masses) == pytest.approx({"only": 1.0})


def test_mental_model_without_observations() -> None:
    assert len(build_mental_model(None)) == 0
    q = build_mental_model(None, UserExpectations(expected_output="guess"))
    assert dict(q.masses) == pytest.approx({"guess": 1.0})


def test_smoothing_leaves_zero_sum_map_unnormalised() -> None:
    assert smooth({}) == {}
    assert smooth({"a": 0.0}, epsilon=0.0) == {"a": 0.0}


def test_smoothing_gives_every_outcome_positive_mass() -> None:
    smoothed = smooth({"a": 1.0, "b": 0.0})
    assert smoothed["b"] == pytest.approx(0.005)
    assert sum(smoothed.values()) == pytest.approx(1.0)


def test_distribution_value_construction_copies_input() -> None:
    source = {"a": 0.5, "b": 0.5}
    d = Distribution(masses=source)
    source["a"] = 0.9
    assert d.get("a") == 0.5
